import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "certlink.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "12001")),
    )


if __name__ == "__main__":
    main()

from setuptools import setup, find_packages

# Sources live under backend/src; map the package root there.
found_packages = find_packages("backend/src", include=["certlink", "certlink.*"])

setup(
    name="certlink",
    version="0.1.0",
    packages=found_packages,
    package_dir={"": "backend/src"},
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.29.0",
        "python-multipart>=0.0.9",
        "pydantic>=2.5.0",
        "boto3>=1.40.1",
        "httpx>=0.27.0",
        "python-dotenv>=1.0.0",
        "qrcode[pil]>=7.4",
        "Pillow>=10.0.0",
        "pypdf>=4.0.0",
        "reportlab>=4.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "opencv-python-headless>=4.8.0",
            "numpy>=1.24.0",
        ],
    },
)

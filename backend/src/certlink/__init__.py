"""Certificate ingestion service: QR-stamped certificates stored in S3."""

__version__ = "0.1.0"

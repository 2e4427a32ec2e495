"""Certificate ingestion and retrieval module

Handles certificate upload, QR code stamping, S3 storage and DynamoDB
metadata for issued certificates.
"""

from certlink.app_api.certificates.models import (
    Certificate,
    StorageLocator,
    CertificateUploadResponse,
    CertificateInfoResponse,
    InternCertificateRequest,
)

__all__ = [
    'Certificate',
    'StorageLocator',
    'CertificateUploadResponse',
    'CertificateInfoResponse',
    'InternCertificateRequest',
]

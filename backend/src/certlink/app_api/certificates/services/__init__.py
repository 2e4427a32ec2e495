"""Certificate services module"""

from certlink.app_api.certificates.services.qr_generator import (
    QRCodeGenerator,
    QRConfig,
    GeneratedCode,
)
from certlink.app_api.certificates.services.font_provider import FontProvider
from certlink.app_api.certificates.services.pdf_augmenter import (
    AugmentOptions,
    TextOptions,
    embed_qr_code_in_pdf,
)
from certlink.app_api.certificates.services.storage_service import (
    ArtifactStore,
    InMemoryArtifactStore,
    S3ArtifactStore,
    create_artifact_store,
)
from certlink.app_api.certificates.services.certificate_repository import (
    CertificateRepository,
    InMemoryCertificateRepository,
    DynamoDBCertificateRepository,
    create_certificate_repository,
)
from certlink.app_api.certificates.services.email_service import EmailService, InternDetails
from certlink.app_api.certificates.services.pipeline import (
    CertificatePipeline,
    PipelineResult,
    UploadedFile,
)

__all__ = [
    'QRCodeGenerator',
    'QRConfig',
    'GeneratedCode',
    'FontProvider',
    'AugmentOptions',
    'TextOptions',
    'embed_qr_code_in_pdf',
    'ArtifactStore',
    'InMemoryArtifactStore',
    'S3ArtifactStore',
    'create_artifact_store',
    'CertificateRepository',
    'InMemoryCertificateRepository',
    'DynamoDBCertificateRepository',
    'create_certificate_repository',
    'EmailService',
    'InternDetails',
    'CertificatePipeline',
    'PipelineResult',
    'UploadedFile',
]

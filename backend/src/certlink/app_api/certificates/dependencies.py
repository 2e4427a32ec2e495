"""Service wiring and FastAPI dependencies for certificate routes.

Every service is stateless (or owns only its client handle) and is built
once at startup, then handed to routes through ``app.state``.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from certlink.shared.config import AppConfig
from .services.certificate_repository import CertificateRepository, create_certificate_repository
from .services.email_service import EmailService
from .services.font_provider import FontProvider
from .services.pipeline import CertificatePipeline
from .services.qr_generator import QRCodeGenerator
from .services.storage_service import ArtifactStore, create_artifact_store

logger = logging.getLogger(__name__)


@dataclass
class CertificateServices:
    config: AppConfig
    code_generator: QRCodeGenerator
    font_provider: FontProvider
    store: ArtifactStore
    repository: CertificateRepository
    notifier: EmailService
    pipeline: CertificatePipeline


def build_services(
    config: AppConfig,
    *,
    code_generator: QRCodeGenerator = None,
    font_provider: FontProvider = None,
    store: ArtifactStore = None,
    repository: CertificateRepository = None,
    notifier: EmailService = None,
) -> CertificateServices:
    """
    Build the certificate services from configuration.

    Any service passed explicitly is used as-is (tests inject in-memory
    stores and offline font providers this way).
    """
    code_generator = code_generator or QRCodeGenerator()
    font_provider = font_provider or FontProvider(
        font_url=config.font_url,
        policy=config.effective_font_policy,
        timeout_seconds=config.font_fetch_timeout_seconds,
    )
    store = store or create_artifact_store(config.storage)
    repository = repository or create_certificate_repository(
        config.certificates_table_name,
        region=config.storage.region,
    )
    notifier = notifier or EmailService(config.email)

    pipeline = CertificatePipeline(
        config=config,
        code_generator=code_generator,
        font_provider=font_provider,
        store=store,
        repository=repository,
        notifier=notifier,
    )

    logger.info(
        f"Certificate services ready: store={type(store).__name__}, "
        f"repository={type(repository).__name__}, "
        f"font_policy={config.effective_font_policy.value}, "
        f"email={'enabled' if notifier.is_available else 'disabled'}"
    )

    return CertificateServices(
        config=config,
        code_generator=code_generator,
        font_provider=font_provider,
        store=store,
        repository=repository,
        notifier=notifier,
        pipeline=pipeline,
    )


def get_services(request: Request) -> CertificateServices:
    return request.app.state.services


def get_config(request: Request) -> AppConfig:
    return request.app.state.services.config

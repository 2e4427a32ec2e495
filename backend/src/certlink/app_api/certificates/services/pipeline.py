"""Certificate ingestion pipeline

Runs one upload through the ordered stages:

    assign id -> generate QR -> (PDF only) fetch font + augment -> upload -> persist -> (optional) notify

Each stage produces a StageResult. Fatal failures (QR generation, strict font
fetch, upload, persistence) abort the run with the stage's error; any failure in
augmentation or notification, whatever it raised, is logged and the run
continues with a degraded result. Nothing already done is rolled back on a
fatal failure: an upload followed by a failed persist leaves the stored
object behind.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from certlink.shared.config import AppConfig
from ..models import Certificate, StorageLocator, utcnow
from .certificate_repository import CertificateRepository
from .email_service import EmailService, InternDetails
from .font_provider import FontProvider
from .pdf_augmenter import AugmentOptions, TextOptions, embed_qr_code_in_pdf
from .qr_generator import GeneratedCode, QRCodeGenerator
from .results import FailureKind, StageResult
from .storage_service import ArtifactStore

logger = logging.getLogger(__name__)

PAGINATED_TYPES = ("pdf",)

Augmenter = Callable[[bytes, bytes, AugmentOptions], bytes]


@dataclass(frozen=True)
class UploadedFile:
    """A validated upload, ready for the pipeline."""

    content: bytes
    original_name: str
    content_type: str
    extension: str


@dataclass(frozen=True)
class PipelineResult:
    certificate: Certificate
    view_url: str
    notification: Optional[StageResult] = None

    @property
    def notified(self) -> bool:
        return self.notification is not None and self.notification.ok


def assign_identifier() -> str:
    """Pure, I/O-free id assignment; the id is threaded through every later stage."""
    return str(uuid.uuid4())


class CertificatePipeline:
    """Sequences the ingestion stages under the partial-failure policy."""

    def __init__(
        self,
        config: AppConfig,
        code_generator: QRCodeGenerator,
        font_provider: FontProvider,
        store: ArtifactStore,
        repository: CertificateRepository,
        notifier: EmailService,
        augmenter: Augmenter = embed_qr_code_in_pdf,
        id_factory: Callable[[], str] = assign_identifier,
    ):
        self.config = config
        self.code_generator = code_generator
        self.font_provider = font_provider
        self.store = store
        self.repository = repository
        self.notifier = notifier
        self.augmenter = augmenter
        self.id_factory = id_factory

    # =========================================================================
    # Stage plumbing
    # =========================================================================

    async def _run_stage(
        self,
        stage: str,
        func: Callable[..., Union[Any, Awaitable[Any]]],
        *args,
        **kwargs,
    ) -> StageResult:
        try:
            value = func(*args, **kwargs)
            if asyncio.iscoroutine(value):
                value = await value
            return StageResult.success(stage, value)
        except Exception as e:
            return StageResult.failed(stage, e)

    def _dispatch(self, result: StageResult, certificate_id: str) -> Any:
        """Return the stage value, raise on fatal failures, log absorbed ones."""
        if result.ok:
            return result.value

        if result.fatal:
            logger.error(
                f"Certificate {certificate_id}: stage '{result.stage}' failed "
                f"({result.failure.value}): {result.error}",
                exc_info=result.error,
            )
            raise result.error

        logger.warning(
            f"Certificate {certificate_id}: stage '{result.stage}' failed "
            f"({result.failure.value}), continuing: {result.error}",
            exc_info=result.error if result.failure == FailureKind.UNEXPECTED else None,
        )
        return None

    def _write_debug_artifact(self, name: str, data: bytes) -> None:
        """Blocking write; only call from a worker thread."""
        if not self.config.is_development:
            return
        try:
            directory = Path(self.config.debug_artifact_dir)
            directory.mkdir(parents=True, exist_ok=True)
            (directory / name).write_bytes(data)
        except OSError as e:
            logger.warning(f"Could not write debug artifact {name}: {e}")

    # =========================================================================
    # Stages
    # =========================================================================

    def _render_code(self, view_url: str) -> GeneratedCode:
        code = self.code_generator.generate(view_url)
        self._write_debug_artifact("debug-qr.png", code.png)
        return code

    async def _generate_code(self, view_url: str) -> GeneratedCode:
        return await asyncio.to_thread(self._render_code, view_url)

    def _augment_document(self, content: bytes, qr_png: bytes, options: AugmentOptions) -> bytes:
        self._write_debug_artifact("debug-original.pdf", content)
        augmented = self.augmenter(content, qr_png, options)
        self._write_debug_artifact("debug-modified.pdf", augmented)
        return augmented

    async def _augment(self, content: bytes, qr_png: bytes, view_url: str, font_bytes: Optional[bytes]) -> bytes:
        options = AugmentOptions(
            view_url=view_url,
            size=100,
            margin=50,
            text="Scan to verify",
            text_options=TextOptions(size=10, color="#a6a6a6", font_bytes=font_bytes),
        )
        return await asyncio.to_thread(self._augment_document, content, qr_png, options)

    async def _persist(
        self,
        certificate_id: str,
        upload: UploadedFile,
        final_bytes: bytes,
        locator: StorageLocator,
        has_embedded_qr: bool,
        code: GeneratedCode,
    ) -> Certificate:
        now = utcnow()
        certificate = Certificate.create(
            id=certificate_id,
            file_name=upload.original_name,
            original_name=upload.original_name,
            file_type=upload.extension,
            file_size=len(final_bytes),
            storage_locator=locator,
            has_embedded_qr=has_embedded_qr,
            qr_code=code.data_url,
            upload_date=now,
            created_at=now,
            updated_at=now,
        )
        return await self.repository.save(certificate)

    # =========================================================================
    # Orchestration
    # =========================================================================

    async def run(self, upload: UploadedFile, email: Optional[str] = None) -> PipelineResult:
        """
        Ingest one certificate.

        Args:
            upload: Validated upload
            email: Optional recipient for the "certificate ready" message

        Returns:
            PipelineResult with the persisted certificate

        Raises:
            CodeGenerationFailed, FontUnavailable, StorageUploadFailed,
            PersistenceValidationError, PersistenceFailed: on fatal stage failures
        """
        certificate_id = self.id_factory()
        view_url = self.config.build_view_url(certificate_id)
        logger.info(
            f"Ingesting certificate {certificate_id}: {upload.original_name} "
            f"({upload.content_type}, {len(upload.content)} bytes)"
        )

        code = self._dispatch(
            await self._run_stage("generate_code", self._generate_code, view_url),
            certificate_id,
        )

        final_bytes = upload.content
        has_embedded_qr = False

        if upload.extension in PAGINATED_TYPES:
            font_bytes = self._dispatch(
                await self._run_stage("fetch_font", self.font_provider.fetch),
                certificate_id,
            )
            augmented = self._dispatch(
                await self._run_stage("augment", self._augment, upload.content, code.png, view_url, font_bytes),
                certificate_id,
            )
            if augmented is not None:
                final_bytes = augmented
                has_embedded_qr = True

        locator = self._dispatch(
            await self._run_stage(
                "upload",
                self.store.upload,
                final_bytes,
                upload.content_type,
                upload.original_name,
                upload.extension,
            ),
            certificate_id,
        )

        certificate = self._dispatch(
            await self._run_stage(
                "persist",
                self._persist,
                certificate_id,
                upload,
                final_bytes,
                locator,
                has_embedded_qr,
                code,
            ),
            certificate_id,
        )

        notification = None
        if email:
            notification = await self._run_stage(
                "notify",
                self.notifier.send_certificate_link,
                email,
                certificate_id,
                upload.original_name,
                view_url,
            )
            self._dispatch(notification, certificate_id)

        logger.info(
            f"Certificate {certificate_id} completed: hasEmbeddedQR={has_embedded_qr}, "
            f"size={certificate.file_size}"
        )
        return PipelineResult(certificate=certificate, view_url=view_url, notification=notification)

    async def notify_intern(
        self,
        email: str,
        certificate_id: str,
        intern: InternDetails,
    ) -> StageResult:
        """Best-effort internship certificate e-mail; failures are logged, never raised."""
        result = await self._run_stage(
            "notify",
            self.notifier.send_certificate_link,
            email,
            certificate_id,
            f"{intern.name}'s Internship Certificate.pdf",
            self.config.build_view_url(certificate_id),
            intern,
        )
        self._dispatch(result, certificate_id)
        return result

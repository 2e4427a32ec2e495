"""Certificate API routes

Provides endpoints for uploading certificates, viewing and downloading them,
reading their metadata, regenerating their QR code and e-mailing intern
certificates.
"""

import logging
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import RedirectResponse, Response

from certlink.shared.errors import CertificateNotFound, CertLinkError
from .dependencies import CertificateServices, get_services
from .models import (
    Certificate,
    CertificateInfo,
    CertificateInfoResponse,
    CertificateUploadData,
    CertificateUploadResponse,
    InternCertificateRequest,
    NotificationResponse,
)
from .services.email_service import InternDetails
from .services.pipeline import PAGINATED_TYPES
from .services.certificate_repository import CertificateRepository
from .upload import validate_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["certificates"])


def _inline_disposition(file_name: str) -> str:
    ascii_name = file_name.encode("ascii", "ignore").decode("ascii").replace('"', "") or "certificate"
    return f"inline; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name, safe='')}"


def _format_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%m/%d/%Y")
    except ValueError:
        return value


async def _get_certificate(repository: CertificateRepository, certificate_id: str) -> Certificate:
    """Look up an active certificate or raise CertificateNotFound."""
    certificate = await repository.get_by_id(certificate_id)
    if not certificate or not certificate.is_active:
        raise CertificateNotFound(certificate_id)
    return certificate


@router.post(
    "/upload",
    status_code=201,
    response_model=CertificateUploadResponse,
    response_model_exclude_none=True,
)
async def upload_certificate(
    certificate: Optional[UploadFile] = File(None),
    email: Optional[str] = Form(None),
    services: CertificateServices = Depends(get_services),
):
    """
    Upload a certificate and run it through the ingestion pipeline.

    Multipart form fields:
        certificate: The PDF or image file
        email: Optional address to notify once the certificate is stored

    Returns:
        201 with the certificate id, view URL, QR code and download URL

    Raises:
        HTTPException / CertLinkError:
            - 400 if the file is missing, empty or of an unsupported type
            - 413 if the file exceeds the configured size limit
            - 500 if a fatal pipeline stage fails
    """
    if certificate is None or not certificate.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    logger.info(f"POST /upload - {certificate.filename} ({certificate.content_type})")

    upload = await validate_upload(certificate, services.config)
    if not upload.content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        result = await services.pipeline.run(upload, email=(email or "").strip() or None)
    except CertLinkError:
        raise
    except Exception as e:
        logger.error(f"Upload error: {e}", exc_info=True)
        raise CertLinkError("Failed to process certificate upload", cause=e) from e

    stored = result.certificate
    return CertificateUploadResponse(
        data=CertificateUploadData(
            id=stored.id,
            file_name=stored.file_name,
            file_size=stored.file_size,
            file_type=stored.file_type,
            upload_date=stored.upload_date,
            view_url=result.view_url,
            qr_code=stored.qr_code,
            download_url=stored.storage_locator.public_url,
            has_embedded_qr=stored.has_embedded_qr,
        )
    )


@router.get("/view/{certificate_id}")
async def view_certificate(
    certificate_id: str,
    services: CertificateServices = Depends(get_services),
):
    """
    View a certificate.

    PDFs are streamed inline; images redirect to their public storage URL.
    """
    logger.info(f"GET /view/{certificate_id}")

    certificate = await _get_certificate(services.repository, certificate_id)

    if certificate.file_type not in PAGINATED_TYPES:
        return RedirectResponse(certificate.storage_locator.public_url, status_code=302)

    locator = certificate.storage_locator
    try:
        content = await services.store.download(locator.key, locator.bucket)
    except FileNotFoundError:
        logger.warning(f"Stored object missing for certificate {certificate_id}: {locator.key}")
        raise CertificateNotFound(certificate_id)
    except Exception as e:
        logger.error(f"View error: {e}", exc_info=True)
        raise CertLinkError("Failed to retrieve certificate", cause=e) from e

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": _inline_disposition(certificate.file_name)},
    )


@router.get("/certificate/{certificate_id}")
async def get_certificate_file(
    certificate_id: str,
    services: CertificateServices = Depends(get_services),
):
    """Redirect to the certificate's public storage URL."""
    logger.info(f"GET /certificate/{certificate_id}")

    certificate = await _get_certificate(services.repository, certificate_id)
    return RedirectResponse(certificate.storage_locator.public_url, status_code=302)


@router.get(
    "/certificate/{certificate_id}/info",
    response_model=CertificateInfoResponse,
)
async def get_certificate_info(
    certificate_id: str,
    services: CertificateServices = Depends(get_services),
):
    """Return certificate metadata."""
    logger.info(f"GET /certificate/{certificate_id}/info")

    certificate = await _get_certificate(services.repository, certificate_id)
    return CertificateInfoResponse(
        data=CertificateInfo(
            id=certificate.id,
            file_name=certificate.original_name,
            file_type=certificate.file_type,
            file_size=certificate.file_size,
            upload_date=certificate.upload_date,
            storage_location=certificate.storage_locator.public_url,
        )
    )


@router.get("/certificate/{certificate_id}/qr")
async def get_certificate_qr(
    certificate_id: str,
    services: CertificateServices = Depends(get_services),
):
    """Regenerate the QR code image for a certificate's view URL."""
    logger.info(f"GET /certificate/{certificate_id}/qr")

    await _get_certificate(services.repository, certificate_id)

    view_url = services.config.build_view_url(certificate_id)
    png = services.code_generator.generate_buffer(view_url)

    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=\"certificate-{certificate_id}-qr.png\""},
    )


@router.post("/send-intern-certificate", response_model=NotificationResponse)
async def send_intern_certificate(
    request: InternCertificateRequest,
    services: CertificateServices = Depends(get_services),
):
    """
    E-mail an internship certificate link.

    All body fields are required. Delivery is best-effort: the endpoint
    answers 200 once a send was attempted and reports whether it succeeded.
    """
    missing = request.missing_fields()
    if missing:
        logger.warning(f"POST /send-intern-certificate - missing fields: {missing}")
        raise HTTPException(status_code=400, detail="All fields are required")

    logger.info(f"POST /send-intern-certificate - certificate {request.certificate_id}")

    intern = InternDetails(
        name=request.name.strip(),
        role=request.role.strip(),
        start_date=_format_date(request.start_date.strip()),
        end_date=_format_date(request.end_date.strip()),
    )
    result = await services.pipeline.notify_intern(
        email=request.email.strip(),
        certificate_id=request.certificate_id.strip(),
        intern=intern,
    )

    if result.ok:
        return NotificationResponse(message="Certificate email sent successfully", delivered=True)
    return NotificationResponse(
        message=f"Certificate email could not be delivered: {result.error}",
        delivered=False,
    )

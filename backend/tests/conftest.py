"""Pytest configuration for test suite."""

import base64
import io
import sys
from pathlib import Path

import httpx
import pytest

# Add backend/src to Python path for imports
# This file is in backend/tests/, so we need to go up one level to backend/
BACKEND_DIR = Path(__file__).parent.parent
SRC_DIR = BACKEND_DIR / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from certlink.shared.config import AppConfig, EmailConfig, FontPolicy  # noqa: E402
from certlink.app_api.certificates.dependencies import build_services  # noqa: E402
from certlink.app_api.certificates.services.certificate_repository import (  # noqa: E402
    InMemoryCertificateRepository,
)
from certlink.app_api.certificates.services.font_provider import FontProvider  # noqa: E402
from certlink.app_api.certificates.services.storage_service import InMemoryArtifactStore  # noqa: E402

FRONTEND_URL = "https://certs.example.com"
FONT_URL = "https://fonts.example.com/Caption-Regular.ttf"


# =========================================================================
# Helpers
# =========================================================================

def make_pdf(pages: int = 2, pagesize=None, filler_lines: int = 40) -> bytes:
    """Build a simple multi-page PDF with reportlab."""
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.pdfgen import canvas

    pagesize = pagesize or landscape(A4)
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=pagesize)
    for page_number in range(pages):
        c.setFont("Helvetica", 14)
        c.drawString(72, pagesize[1] - 72, f"Certificate of Completion - page {page_number + 1}")
        c.setFont("Helvetica", 8)
        for line in range(filler_lines):
            c.drawString(72, pagesize[1] - 100 - line * 10, f"Line {line}: " + "lorem ipsum " * 8)
        c.showPage()
    c.save()
    return buffer.getvalue()


def make_png(width: int = 64, height: int = 48) -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_qr(png: bytes) -> str:
    """Decode a QR code PNG with OpenCV, returning the payload ('' if none found)."""
    import cv2
    import numpy as np

    image = cv2.imdecode(np.frombuffer(png, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image.ndim == 3 and image.shape[2] == 4:
        # Composite transparent pixels onto white
        alpha = image[:, :, 3:4].astype(np.float32) / 255.0
        image = (image[:, :, :3] * alpha + 255 * (1 - alpha)).astype(np.uint8)
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    image = cv2.copyMakeBorder(image, 40, 40, 40, 40, cv2.BORDER_CONSTANT, value=255)

    detectors = [cv2.QRCodeDetector()]
    if hasattr(cv2, "QRCodeDetectorAruco"):
        detectors.append(cv2.QRCodeDetectorAruco())

    # Whole-number upscales keep every module the same width
    for scale in (1, 2, 3):
        scaled = image if scale == 1 else cv2.resize(
            image, None, fx=scale, fy=scale, interpolation=cv2.INTER_NEAREST
        )
        for detector in detectors:
            data, _, _ = detector.detectAndDecode(scaled)
            if data:
                return data
    return ""


def decode_data_url(data_url: str) -> bytes:
    prefix = "data:image/png;base64,"
    assert data_url.startswith(prefix)
    return base64.b64decode(data_url[len(prefix):])


def font_transport(status_code: int = 404, content: bytes = b"") -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=content)

    return httpx.MockTransport(handler)


# =========================================================================
# Fixtures
# =========================================================================

@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        environment="test",
        frontend_url=FRONTEND_URL,
        max_file_size=1024 * 1024,
        font_url=FONT_URL,
        font_policy=FontPolicy.LENIENT,
        debug_artifact_dir=str(tmp_path / "debug"),
        email=EmailConfig(),
    )


@pytest.fixture
def offline_font_provider() -> FontProvider:
    """Lenient provider whose remote font is always missing."""
    return FontProvider(FONT_URL, policy=FontPolicy.LENIENT, transport=font_transport(404))


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore(bucket="test-bucket")


@pytest.fixture
def repository() -> InMemoryCertificateRepository:
    return InMemoryCertificateRepository()


@pytest.fixture
def services(config, offline_font_provider, store, repository):
    return build_services(
        config,
        font_provider=offline_font_provider,
        store=store,
        repository=repository,
    )


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient
    from certlink.main import create_app

    with TestClient(create_app(services=services)) as test_client:
        yield test_client


@pytest.fixture
def sample_pdf() -> bytes:
    return make_pdf(pages=2)


@pytest.fixture
def sample_png() -> bytes:
    return make_png()

"""End-to-end tests for the certificate HTTP API"""

import asyncio
import io
from dataclasses import replace

import pytest
from pypdf import PdfReader

from conftest import FRONTEND_URL, decode_data_url, decode_qr


def _upload(client, content: bytes, file_name: str, content_type: str, email: str = None):
    data = {"email": email} if email else None
    return client.post(
        "/api/upload",
        files={"certificate": (file_name, content, content_type)},
        data=data,
    )


# =========================================================================
# POST /upload
# =========================================================================

def test_pdf_upload_scenario(client, sample_pdf):
    """2-page PDF, no e-mail: code embedded and /view streams the augmented file."""
    response = _upload(client, sample_pdf, "diploma.pdf", "application/pdf")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["hasEmbeddedQR"] is True
    assert data["fileType"] == "pdf"
    assert data["fileName"] == "diploma.pdf"
    assert data["id"] in data["viewUrl"]
    assert data["viewUrl"] == f"{FRONTEND_URL}/view/{data['id']}"
    assert decode_qr(decode_data_url(data["qrCode"])) == data["viewUrl"]

    view = client.get(f"/api/view/{data['id']}")
    assert view.status_code == 200
    assert view.headers["content-type"] == "application/pdf"
    assert view.headers["content-disposition"].startswith('inline; filename="diploma.pdf"')
    assert len(PdfReader(io.BytesIO(view.content)).pages) == 2
    assert len(view.content) > len(sample_pdf)
    assert len(view.content) == data["fileSize"]


def test_caption_drawn_with_fallback_font_when_font_fetch_fails(client, sample_pdf):
    response = _upload(client, sample_pdf, "diploma.pdf", "application/pdf")
    certificate_id = response.json()["data"]["id"]

    view = client.get(f"/api/view/{certificate_id}")

    text = PdfReader(io.BytesIO(view.content)).pages[0].extract_text()
    assert "Scan to verify" in text


@pytest.mark.parametrize(
    "file_name,content_type",
    [("badge.png", "image/png"), ("badge.jpg", "image/jpeg"), ("badge.jpeg", "image/jpg")],
)
def test_image_upload(client, sample_png, file_name, content_type):
    response = _upload(client, sample_png, file_name, content_type)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["hasEmbeddedQR"] is False
    assert data["fileSize"] == len(sample_png)
    assert data["id"] in data["viewUrl"]
    assert data["downloadUrl"].startswith("memory://test-bucket/certificates/")


def test_image_upload_with_unconfigured_email_still_succeeds(client, sample_png):
    response = _upload(client, sample_png, "badge.png", "image/png", email="a@b.com")

    assert response.status_code == 201
    assert response.json()["success"] is True


def test_corrupt_pdf_is_stored_unmodified(client, store):
    corrupt = b"%PDF-1.7 truncated garbage" * 10

    response = _upload(client, corrupt, "broken.pdf", "application/pdf")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["hasEmbeddedQR"] is False
    assert data["fileSize"] == len(corrupt)
    assert list(store.objects.values())[0][2] == corrupt


def test_extension_and_mime_mismatch_is_rejected(client, sample_pdf):
    response = _upload(client, sample_pdf, "diploma.pdf", "application/zip")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "unsupported_file_type"


def test_unsupported_extension_is_rejected(client):
    response = _upload(client, b"MZ...", "virus.exe", "application/pdf")

    assert response.status_code == 400


def test_missing_file_is_rejected(client):
    response = client.post("/api/upload", data={"email": "a@b.com"})

    assert response.status_code == 400
    assert response.json()["message"] == "No file uploaded"


def test_empty_file_is_rejected(client):
    response = _upload(client, b"", "empty.png", "image/png")

    assert response.status_code == 400


def test_file_exactly_at_limit_is_accepted(client, config):
    content = b"\x89PNG" + b"\x00" * (config.max_file_size - 4)

    response = _upload(client, content, "big.png", "image/png")

    assert response.status_code == 201
    assert response.json()["data"]["fileSize"] == config.max_file_size


def test_file_one_byte_over_limit_is_rejected(client, config):
    content = b"\x89PNG" + b"\x00" * (config.max_file_size - 3)

    response = _upload(client, content, "big.png", "image/png")

    assert response.status_code == 413
    assert response.json()["error"]["code"] == "payload_too_large"


# =========================================================================
# Retrieval endpoints
# =========================================================================

def test_view_image_redirects_to_public_url(client, sample_png):
    data = _upload(client, sample_png, "badge.png", "image/png").json()["data"]

    response = client.get(f"/api/view/{data['id']}", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == data["downloadUrl"]


def test_certificate_redirects_to_public_url(client, sample_pdf):
    data = _upload(client, sample_pdf, "diploma.pdf", "application/pdf").json()["data"]

    response = client.get(f"/api/certificate/{data['id']}", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == data["downloadUrl"]


def test_certificate_info(client, sample_png):
    data = _upload(client, sample_png, "badge.png", "image/png").json()["data"]

    response = client.get(f"/api/certificate/{data['id']}/info")

    assert response.status_code == 200
    info = response.json()["data"]
    assert info["id"] == data["id"]
    assert info["fileName"] == "badge.png"
    assert info["fileType"] == "png"
    assert info["fileSize"] == len(sample_png)
    assert info["storageLocation"] == data["downloadUrl"]
    assert "uploadDate" in info


@pytest.mark.parametrize("path", ["/api/certificate/unknown-id/info", "/api/certificate/unknown-id",
                                  "/api/certificate/unknown-id/qr", "/api/view/unknown-id"])
def test_unknown_certificate_returns_404(client, path):
    response = client.get(path, follow_redirects=False)

    assert response.status_code == 404
    assert response.json()["message"] == "Certificate not found"


def test_qr_endpoint_is_stable_across_calls(client, sample_png):
    data = _upload(client, sample_png, "badge.png", "image/png").json()["data"]

    first = client.get(f"/api/certificate/{data['id']}/qr")
    second = client.get(f"/api/certificate/{data['id']}/qr")

    assert first.status_code == 200
    assert first.headers["content-type"] == "image/png"
    assert decode_qr(first.content) == data["viewUrl"]
    assert decode_qr(second.content) == data["viewUrl"]


def test_inactive_certificate_is_hidden(client, repository, sample_png):
    data = _upload(client, sample_png, "badge.png", "image/png").json()["data"]

    asyncio.run(repository.set_active(data["id"], False))

    assert client.get(f"/api/certificate/{data['id']}/info").status_code == 404


# =========================================================================
# POST /send-intern-certificate
# =========================================================================

INTERN_BODY = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "startDate": "2026-06-01",
    "endDate": "2026-08-31",
    "role": "Backend Intern",
    "certificateId": "abc-123",
}


@pytest.mark.parametrize("missing", list(INTERN_BODY))
def test_intern_certificate_requires_every_field(client, missing):
    body = {k: v for k, v in INTERN_BODY.items() if k != missing}

    response = client.post("/api/send-intern-certificate", json=body)

    assert response.status_code == 400
    assert response.json()["message"] == "All fields are required"


def test_intern_certificate_dispatch_attempt_returns_200(client):
    response = client.post("/api/send-intern-certificate", json=INTERN_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["delivered"] is False


def test_intern_certificate_delivered(client, services, monkeypatch):
    sent = []

    async def fake_send(email, certificate_id, file_name, view_url, intern=None):
        sent.append((email, certificate_id, file_name, view_url, intern))

    monkeypatch.setattr(services.notifier, "send_certificate_link", fake_send)

    response = client.post("/api/send-intern-certificate", json=INTERN_BODY)

    assert response.json()["delivered"] is True
    email, certificate_id, file_name, view_url, intern = sent[0]
    assert (email, certificate_id) == ("ada@example.com", "abc-123")
    assert file_name == "Ada Lovelace's Internship Certificate.pdf"
    assert view_url == f"{FRONTEND_URL}/view/abc-123"
    assert (intern.start_date, intern.end_date) == ("06/01/2026", "08/31/2026")


# =========================================================================
# Misc
# =========================================================================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["environment"] == "test"


def test_unknown_endpoint(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json()["message"] == "API endpoint not found"


def test_upload_with_malformed_email_header_still_succeeds(config, store, repository, offline_font_provider,
                                                            sample_png, monkeypatch):
    from fastapi.testclient import TestClient

    from certlink.app_api.certificates.dependencies import build_services
    from certlink.app_api.certificates.services import email_service
    from certlink.main import create_app
    from certlink.shared.config import EmailConfig

    class UnusedSMTP:
        def __init__(self, *args, **kwargs):
            raise AssertionError("no SMTP connection expected")

    monkeypatch.setattr(email_service.smtplib, "SMTP", UnusedSMTP)
    mail_config = replace(config, email=EmailConfig(host="smtp.example.com", user="mailer@example.com",
                                                    password="secret"))
    services = build_services(mail_config, font_provider=offline_font_provider, store=store,
                              repository=repository)

    with TestClient(create_app(services=services)) as mail_client:
        response = _upload(mail_client, sample_png, "badge.png", "image/png", email="a@b.com\r\nBcc: x@y.com")

    assert response.status_code == 201
    assert asyncio.run(repository.get_by_id(response.json()["data"]["id"])) is not None


def test_intern_certificate_unexpected_notifier_error_returns_200(client, services, monkeypatch):
    async def broken_send(email, certificate_id, file_name, view_url, intern=None):
        raise RuntimeError("template rendering bug")

    monkeypatch.setattr(services.notifier, "send_certificate_link", broken_send)

    response = client.post("/api/send-intern-certificate", json=INTERN_BODY)

    assert response.status_code == 200
    assert response.json()["delivered"] is False

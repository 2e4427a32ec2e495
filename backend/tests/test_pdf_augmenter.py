"""Tests for drawing the QR overlay onto PDF pages"""

import io

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4, letter

from certlink.app_api.certificates.services.pdf_augmenter import (
    AugmentOptions,
    TextOptions,
    embed_qr_code_in_pdf,
)
from certlink.app_api.certificates.services.qr_generator import QRCodeGenerator
from certlink.shared.errors import AugmentationFailed

from conftest import make_pdf

VIEW_URL = "https://certs.example.com/view/7d3c1a2e-1111-4a4a-8b8b-123456789abc"


@pytest.fixture
def qr_png() -> bytes:
    return QRCodeGenerator().generate_buffer(VIEW_URL)


def _options(**kwargs) -> AugmentOptions:
    return AugmentOptions(view_url=VIEW_URL, **kwargs)


def _page_text(pdf_bytes: bytes, index: int = 0) -> str:
    return PdfReader(io.BytesIO(pdf_bytes)).pages[index].extract_text()


def test_page_count_is_preserved(qr_png):
    original = make_pdf(pages=3)

    augmented = embed_qr_code_in_pdf(original, qr_png, _options())

    assert len(PdfReader(io.BytesIO(augmented)).pages) == 3
    assert len(augmented) > len(original)


def test_every_page_gets_caption_and_url(qr_png):
    augmented = embed_qr_code_in_pdf(make_pdf(pages=2), qr_png, _options())

    for index in range(2):
        text = _page_text(augmented, index)
        assert "Scan to verify" in text
        assert VIEW_URL in text
        assert "Certificate of Completion" in text


def test_every_page_gets_the_code_image(qr_png):
    augmented = embed_qr_code_in_pdf(make_pdf(pages=2), qr_png, _options())

    for page in PdfReader(io.BytesIO(augmented)).pages:
        assert len(page.images) >= 1


def test_input_buffer_is_not_mutated(qr_png):
    original = make_pdf(pages=1)
    snapshot = bytes(original)

    embed_qr_code_in_pdf(original, qr_png, _options())

    assert original == snapshot


def test_custom_caption_text(qr_png):
    augmented = embed_qr_code_in_pdf(make_pdf(pages=1), qr_png, _options(text="Verify me"))

    assert "Verify me" in _page_text(augmented)


@pytest.mark.parametrize("pagesize", [A4, letter])
def test_portrait_pages_are_supported(qr_png, pagesize):
    augmented = embed_qr_code_in_pdf(make_pdf(pages=1, pagesize=pagesize), qr_png, _options())

    assert "Scan to verify" in _page_text(augmented)


def test_corrupt_font_falls_back_to_helvetica(qr_png):
    options = _options(text_options=TextOptions(font_bytes=b"definitely not a truetype font" * 100))

    augmented = embed_qr_code_in_pdf(make_pdf(pages=1), qr_png, options)

    assert "Scan to verify" in _page_text(augmented)


def test_corrupt_pdf_raises_augmentation_failed(qr_png):
    with pytest.raises(AugmentationFailed) as exc_info:
        embed_qr_code_in_pdf(b"%PDF-1.4 this is not really a pdf", qr_png, _options())

    assert exc_info.value.fatal is False


def test_unreadable_code_image_raises_augmentation_failed():
    with pytest.raises(AugmentationFailed):
        embed_qr_code_in_pdf(make_pdf(pages=1), b"not a png", _options())

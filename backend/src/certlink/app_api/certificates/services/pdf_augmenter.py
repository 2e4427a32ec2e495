"""Draw the verification QR code and caption onto every page of a PDF

The source document is parsed with pypdf; for each page a single-page overlay
is rendered with reportlab and merged on top of the original content, so the
existing page content is left untouched.
"""

import hashlib
import io
import logging
from dataclasses import dataclass, field
from typing import Optional

from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from certlink.shared.errors import AugmentationFailed

logger = logging.getLogger(__name__)

FALLBACK_FONT = "Helvetica"

# Fixed QR anchor (PDF points, origin bottom-left), clamped to the page size
QR_ANCHOR_X = 585
QR_ANCHOR_Y = 220


@dataclass
class TextOptions:
    size: float = 10
    color: str = "#a6a6a6"
    font_bytes: Optional[bytes] = None  # TrueType data; None means Helvetica


@dataclass
class AugmentOptions:
    """Layout options for the QR overlay."""

    view_url: str
    size: float = 100
    margin: float = 50
    text: str = "Scan to verify"
    text_options: TextOptions = field(default_factory=TextOptions)


def _register_caption_font(font_bytes: Optional[bytes]) -> str:
    """Register a custom TrueType font with reportlab, falling back to Helvetica."""
    if not font_bytes:
        return FALLBACK_FONT

    font_name = f"Caption-{hashlib.sha1(font_bytes).hexdigest()[:12]}"
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name

    try:
        pdfmetrics.registerFont(TTFont(font_name, io.BytesIO(font_bytes)))
        return font_name
    except Exception as e:
        # reportlab raises a mix of TTFError, struct.error and IndexError on bad data
        logger.error(f"Failed to embed custom font, using {FALLBACK_FONT} fallback: {e}")
        return FALLBACK_FONT


def _load_qr_image(qr_png: bytes) -> ImageReader:
    try:
        image = ImageReader(io.BytesIO(qr_png))
        image.getSize()
        return image
    except Exception as e:
        raise AugmentationFailed("Failed to embed QR code image", cause=e) from e


def _render_overlay(
    left: float,
    bottom: float,
    width: float,
    height: float,
    qr_image: ImageReader,
    font_name: str,
    options: AugmentOptions,
):
    """Render one overlay page matching the target page's media box."""
    size = options.size
    text_opts = options.text_options
    color = HexColor(text_opts.color)

    qr_x = max(0.0, min(QR_ANCHOR_X, width - size))
    qr_y = max(0.0, min(QR_ANCHOR_Y, height - size))

    # Centre the caption under the code, approximating glyph width from the font size
    text_x = qr_x + (size / 2) - (len(options.text) * text_opts.size / 4)
    text_y = qr_y - options.margin + 40

    url_x = options.margin
    url_y = max(0.0, options.margin - 30)

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(left + width, bottom + height))
    c.drawImage(
        qr_image,
        left + qr_x,
        bottom + qr_y,
        width=size,
        height=size,
        mask="auto",
    )

    c.setFont(font_name, text_opts.size)
    c.setFillColor(color)
    c.drawString(left + text_x, bottom + text_y, options.text)
    c.drawString(left + url_x, bottom + url_y, options.view_url)

    c.showPage()
    c.save()

    return PdfReader(io.BytesIO(buffer.getvalue())).pages[0]


def _augment(pdf_bytes: bytes, qr_png: bytes, options: AugmentOptions) -> bytes:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    if reader.is_encrypted:
        raise AugmentationFailed("Cannot modify an encrypted PDF")

    pages = list(reader.pages)
    if not pages:
        raise AugmentationFailed("PDF has no pages")

    font_name = _register_caption_font(options.text_options.font_bytes)
    qr_image = _load_qr_image(qr_png)

    writer = PdfWriter()
    for page in pages:
        box = page.mediabox
        overlay = _render_overlay(
            float(box.left),
            float(box.bottom),
            float(box.width),
            float(box.height),
            qr_image,
            font_name,
            options,
        )
        page.merge_page(overlay)
        writer.add_page(page)

    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


def embed_qr_code_in_pdf(pdf_bytes: bytes, qr_png: bytes, options: AugmentOptions) -> bytes:
    """
    Draw the QR code, caption and verification URL onto every page.

    Args:
        pdf_bytes: Original PDF document (never modified)
        qr_png: QR code PNG bytes
        options: Overlay layout and caption style

    Returns:
        Bytes of the new PDF document

    Raises:
        AugmentationFailed: If the PDF cannot be parsed or the code cannot be embedded
    """
    try:
        return _augment(pdf_bytes, qr_png, options)
    except AugmentationFailed:
        raise
    except Exception as e:
        logger.error(f"PDF modification error: {e}")
        raise AugmentationFailed("Failed to embed QR code in PDF", cause=e) from e

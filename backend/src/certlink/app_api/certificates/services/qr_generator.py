"""QR code generation for certificate view URLs"""

import base64
import io
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image, ImageColor

from certlink.shared.errors import CodeGenerationFailed

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


@dataclass(frozen=True)
class QRConfig:
    """Rendering options for a QR code image."""

    error_correction: str = "H"
    width: int = 300  # final image width/height in pixels
    margin: int = 2  # quiet zone, in modules
    dark_color: str = "#000000"
    light_color: str = "#FFFFFF"  # "transparent" for an RGBA background


@dataclass(frozen=True)
class GeneratedCode:
    png: bytes
    data_url: str


def to_data_url(png: bytes) -> str:
    return f"data:image/png;base64,{base64.b64encode(png).decode('ascii')}"


def _pad_to_width(image: Image.Image, cfg: QRConfig) -> Image.Image:
    """Center the code on a ``cfg.width`` square canvas of the light color."""
    if image.size[0] >= cfg.width:
        return image

    if cfg.light_color == "transparent":
        image = image.convert("RGBA")
        fill = (0, 0, 0, 0)
    else:
        image = image.convert("RGB")
        fill = ImageColor.getrgb(cfg.light_color)

    canvas = Image.new(image.mode, (cfg.width, cfg.width), fill)
    offset = (cfg.width - image.size[0]) // 2
    canvas.paste(image, (offset, offset))
    return canvas


class QRCodeGenerator:
    """
    Stateless QR code encoder.

    Built once at startup and shared by every request; the payload of a
    generated code always decodes to exactly the URL it was given.
    """

    def __init__(self, default_config: Optional[QRConfig] = None):
        self.default_config = default_config or QRConfig()

    def _resolve(self, config: Optional[QRConfig], **overrides) -> QRConfig:
        resolved = config or self.default_config
        return replace(resolved, **overrides) if overrides else resolved

    def generate_buffer(self, url: str, config: Optional[QRConfig] = None, **overrides) -> bytes:
        """
        Encode a URL as PNG bytes.

        Args:
            url: Payload to encode
            config: Rendering options (defaults to the generator's config)
            **overrides: Individual QRConfig fields to override

        Returns:
            PNG image bytes, ``config.width`` pixels square unless the code
            has more modules than that width has pixels

        Raises:
            CodeGenerationFailed: If the encoder rejects the input
        """
        cfg = self._resolve(config, **overrides)

        if not url:
            raise CodeGenerationFailed("Failed to generate QR code: empty URL")

        level = ERROR_CORRECTION_LEVELS.get(cfg.error_correction.upper())
        if level is None:
            raise CodeGenerationFailed(
                f"Failed to generate QR code: unknown error correction level '{cfg.error_correction}'"
            )

        try:
            qr = qrcode.QRCode(version=None, error_correction=level, border=cfg.margin)
            qr.add_data(url)
            qr.make(fit=True)

            # Whole-pixel modules only; the remainder becomes extra quiet zone
            total_modules = qr.modules_count + 2 * cfg.margin
            qr.box_size = max(1, math.floor(cfg.width / total_modules))
            if qr.box_size * total_modules > cfg.width:
                logger.warning(
                    f"QR code needs {total_modules} modules, wider than {cfg.width}px; "
                    f"rendering at {qr.box_size * total_modules}px"
                )

            image = qr.make_image(
                fill_color=cfg.dark_color,
                back_color=cfg.light_color,
            ).get_image()
            image = _pad_to_width(image, cfg)

            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            return buffer.getvalue()

        except DataOverflowError as e:
            logger.error(f"QR code payload too long ({len(url)} chars) for level {cfg.error_correction}")
            raise CodeGenerationFailed("Failed to generate QR code: URL too long", cause=e) from e
        except (ValueError, TypeError, OSError) as e:
            logger.error(f"QR code buffer generation failed: {e}")
            raise CodeGenerationFailed("Failed to generate QR code buffer", cause=e) from e

    def generate_data_url(self, url: str, config: Optional[QRConfig] = None, **overrides) -> str:
        """Encode a URL and return it as a ``data:image/png;base64`` URL."""
        return to_data_url(self.generate_buffer(url, config, **overrides))

    def generate(self, url: str, config: Optional[QRConfig] = None, **overrides) -> GeneratedCode:
        """Encode a URL once and return both the PNG bytes and the data URL."""
        png = self.generate_buffer(url, config, **overrides)
        return GeneratedCode(png=png, data_url=to_data_url(png))

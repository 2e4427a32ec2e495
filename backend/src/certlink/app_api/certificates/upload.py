"""Validation of multipart certificate uploads"""

import logging
import math
from pathlib import PurePath

from fastapi import UploadFile

from certlink.shared.config import AppConfig
from certlink.shared.errors import SizeExceeded, UnsupportedFileType
from .services.pipeline import UploadedFile

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


def format_file_size(num_bytes: int) -> str:
    """Human readable size, e.g. ``10 MB``."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    exponent = min(int(math.floor(math.log(num_bytes, 1024))), len(units) - 1)
    value = round(num_bytes / (1024 ** exponent), 2)
    return f"{value:g} {units[exponent]}"


def get_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower().lstrip(".")


def check_file_type(file_name: str, content_type: str, config: AppConfig) -> str:
    """
    Both the MIME type and the extension must be in the allowed sets.

    Returns:
        Normalized extension

    Raises:
        UnsupportedFileType: If either check fails
    """
    extension = get_extension(file_name)
    mime_type = (content_type or "").split(";")[0].strip().lower()

    if mime_type not in config.allowed_mime_types or extension not in config.allowed_extensions:
        raise UnsupportedFileType(
            f"Invalid file type. Only {', '.join(config.allowed_extensions)} files are allowed."
        )
    return extension


async def read_limited(file: UploadFile, max_size: int) -> bytes:
    """Read an upload, failing as soon as it grows past max_size bytes."""
    chunks = []
    total = 0
    while True:
        chunk = await file.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise SizeExceeded(f"File too large. Maximum size is {format_file_size(max_size)}")
        chunks.append(chunk)
    return b"".join(chunks)


async def validate_upload(file: UploadFile, config: AppConfig) -> UploadedFile:
    """
    Turn a multipart file field into an UploadedFile.

    Raises:
        UnsupportedFileType: Disallowed MIME type or extension
        SizeExceeded: More than config.max_file_size bytes
    """
    original_name = file.filename or ""
    content_type = file.content_type or ""
    extension = check_file_type(original_name, content_type, config)

    content = await read_limited(file, config.max_file_size)
    logger.debug(f"Accepted upload {original_name} ({content_type}, {len(content)} bytes)")

    return UploadedFile(
        content=content,
        original_name=original_name,
        content_type=content_type.split(";")[0].strip().lower(),
        extension=extension,
    )

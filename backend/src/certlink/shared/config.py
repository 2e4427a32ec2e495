"""Application configuration loaded from the environment.

Values are read once at process start (optionally from a ``.env`` file) and
frozen, then passed explicitly to the services that need them.
"""

import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_ALLOWED_MIME_TYPES = ("application/pdf", "image/jpeg", "image/jpg", "image/png")
DEFAULT_ALLOWED_EXTENSIONS = ("pdf", "jpg", "jpeg", "png")
DEFAULT_FONT_URL = (
    "https://github.com/JulietaUla/Montserrat/blob/master/fonts/ttf/"
    "Montserrat-Regular.ttf?raw=true"
)


class FontPolicy(str, Enum):
    """How the pipeline reacts when the custom type-face cannot be fetched"""

    LENIENT = "lenient"
    STRICT = "strict"


@dataclass(frozen=True)
class StorageConfig:
    """Object storage settings for the artifact store."""

    bucket: Optional[str] = None
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    prefix: str = "certificates"


@dataclass(frozen=True)
class EmailConfig:
    """SMTP transport settings for certificate notifications."""

    host: Optional[str] = None
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    from_address: Optional[str] = None
    timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_mime_types: Tuple[str, ...] = DEFAULT_ALLOWED_MIME_TYPES
    allowed_extensions: Tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    font_url: str = DEFAULT_FONT_URL
    font_policy: Optional[FontPolicy] = None
    font_fetch_timeout_seconds: float = 10.0
    debug_artifact_dir: str = "debug"
    certificates_table_name: Optional[str] = None
    log_level: str = "INFO"
    storage: StorageConfig = field(default_factory=StorageConfig)
    email: EmailConfig = field(default_factory=EmailConfig)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def effective_font_policy(self) -> FontPolicy:
        """Explicit policy if set, otherwise strict in production only."""
        if self.font_policy is not None:
            return self.font_policy
        return FontPolicy.STRICT if self.is_production else FontPolicy.LENIENT

    def build_view_url(self, certificate_id: str) -> str:
        return f"{self.frontend_url.rstrip('/')}/view/{certificate_id}"


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name} value: {raw}, using default {default}")
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name} value: {raw}, using default {default}")
        return default


def _get_csv(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


def _get_font_policy() -> Optional[FontPolicy]:
    raw = os.environ.get("FONT_POLICY")
    if not raw:
        return None
    try:
        return FontPolicy(raw.lower())
    except ValueError:
        logger.warning(f"Invalid FONT_POLICY value: {raw}, deriving from ENVIRONMENT")
        return None


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Build the application configuration from environment variables.

    Args:
        env_file: Optional path to a .env file (defaults to python-dotenv lookup)

    Returns:
        Immutable AppConfig
    """
    load_dotenv(env_file)

    storage = StorageConfig(
        bucket=os.environ.get("S3_BUCKET_NAME") or None,
        region=os.environ.get("AWS_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1")),
        access_key_id=os.environ.get("AWS_ACCESS_KEY_ID") or None,
        secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY") or None,
        endpoint_url=os.environ.get("S3_ENDPOINT_URL") or None,
    )

    email_port = _get_int("EMAIL_PORT", 587)
    email = EmailConfig(
        host=os.environ.get("EMAIL_HOST") or None,
        port=email_port,
        user=os.environ.get("EMAIL_USER") or None,
        password=os.environ.get("EMAIL_PASS") or None,
        from_address=os.environ.get("EMAIL_FROM") or os.environ.get("EMAIL_USER") or None,
    )

    return AppConfig(
        environment=os.environ.get("ENVIRONMENT", "development").lower(),
        frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:3000"),
        max_file_size=_get_int("MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
        allowed_mime_types=_get_csv("ALLOWED_MIME_TYPES", DEFAULT_ALLOWED_MIME_TYPES),
        allowed_extensions=_get_csv("ALLOWED_EXTENSIONS", DEFAULT_ALLOWED_EXTENSIONS),
        font_url=os.environ.get("FONT_URL", DEFAULT_FONT_URL),
        font_policy=_get_font_policy(),
        font_fetch_timeout_seconds=_get_float("FONT_FETCH_TIMEOUT_SECONDS", 10.0),
        debug_artifact_dir=os.environ.get("DEBUG_ARTIFACT_DIR", "debug"),
        certificates_table_name=os.environ.get("CERTIFICATES_TABLE_NAME") or None,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        storage=storage,
        email=email,
    )

"""Shared configuration, logging and error handling"""

from .config import AppConfig, EmailConfig, FontPolicy, StorageConfig, load_config
from .errors import ErrorCode, CertLinkError, create_error_response
from .logging_config import configure_logging

__all__ = [
    "AppConfig",
    "EmailConfig",
    "FontPolicy",
    "StorageConfig",
    "load_config",
    "ErrorCode",
    "CertLinkError",
    "create_error_response",
    "configure_logging",
]

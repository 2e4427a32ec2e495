"""Error types and the JSON error envelope shared by all certificate routes"""

from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Standard error codes for API responses"""

    # Client errors (4xx)
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"

    # Server errors (5xx)
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"

    # Pipeline stage errors
    CODE_GENERATION_FAILED = "code_generation_failed"
    FONT_UNAVAILABLE = "font_unavailable"
    AUGMENTATION_FAILED = "augmentation_failed"
    STORAGE_UPLOAD_FAILED = "storage_upload_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    NOTIFICATION_UNAVAILABLE = "notification_unavailable"
    NOTIFICATION_FAILED = "notification_failed"


class ErrorDetail(BaseModel):
    """Structured error detail for API responses"""

    code: ErrorCode
    message: str
    detail: Optional[str] = None
    field: Optional[str] = None  # For validation errors
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        use_enum_values = True


class CertLinkError(Exception):
    """
    Base class for every error raised by the certificate pipeline.

    Attributes:
        code: ErrorCode reported to API callers
        status_code: HTTP status used when the error reaches a route
        fatal: Whether the pipeline aborts when a stage raises this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500
    fatal: bool = True

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class UnsupportedFileType(CertLinkError):
    code = ErrorCode.UNSUPPORTED_FILE_TYPE
    status_code = 400


class SizeExceeded(CertLinkError):
    code = ErrorCode.PAYLOAD_TOO_LARGE
    status_code = 413


class CodeGenerationFailed(CertLinkError):
    code = ErrorCode.CODE_GENERATION_FAILED


class FontUnavailable(CertLinkError):
    """Raised by the strict font policy when the custom type-face is required."""

    code = ErrorCode.FONT_UNAVAILABLE


class AugmentationFailed(CertLinkError):
    code = ErrorCode.AUGMENTATION_FAILED
    fatal = False


class StorageUploadFailed(CertLinkError):
    code = ErrorCode.STORAGE_UPLOAD_FAILED


class PersistenceValidationError(CertLinkError):
    """Schema validation failure, one message per invalid field."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = field_errors
        super().__init__(", ".join(field_errors.values()))

    @property
    def messages(self) -> List[str]:
        return list(self.field_errors.values())


class PersistenceFailed(CertLinkError):
    code = ErrorCode.PERSISTENCE_FAILED


class NotificationUnavailable(CertLinkError):
    code = ErrorCode.NOTIFICATION_UNAVAILABLE
    status_code = 503
    fatal = False


class NotificationFailed(CertLinkError):
    code = ErrorCode.NOTIFICATION_FAILED
    status_code = 502
    fatal = False


class CertificateNotFound(CertLinkError):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, certificate_id: str):
        self.certificate_id = certificate_id
        super().__init__("Certificate not found")


def create_error_response(
    code: ErrorCode,
    message: str,
    detail: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> dict:
    """
    Create a standardized error response body.

    Args:
        code: Error code from ErrorCode enum
        message: User-friendly error message
        detail: Optional technical detail for debugging (omit in production)
        metadata: Optional additional error context

    Returns:
        Dictionary suitable for a JSONResponse body
    """
    error = ErrorDetail(
        code=code,
        message=message,
        detail=detail,
        metadata=metadata
    )

    return {
        "success": False,
        "message": message,
        "error": error.model_dump(exclude_none=True),
    }


def http_status_to_error_code(status_code: int) -> ErrorCode:
    """Map HTTP status codes to ErrorCode enum values"""

    mapping = {
        400: ErrorCode.BAD_REQUEST,
        404: ErrorCode.NOT_FOUND,
        413: ErrorCode.PAYLOAD_TOO_LARGE,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }

    return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)

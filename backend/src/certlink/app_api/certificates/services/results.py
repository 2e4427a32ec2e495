"""Uniform result type for pipeline stages"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from certlink.shared.errors import (
    AugmentationFailed,
    CodeGenerationFailed,
    FontUnavailable,
    NotificationFailed,
    NotificationUnavailable,
    PersistenceFailed,
    PersistenceValidationError,
    StorageUploadFailed,
)

T = TypeVar("T")

# Stages whose failures are logged and skipped; every other stage aborts the run
ABSORBING_STAGES = frozenset({"augment", "notify"})


class FailureKind(str, Enum):
    CODE_GENERATION_FAILED = "code_generation_failed"
    FONT_UNAVAILABLE = "font_unavailable"
    AUGMENTATION_FAILED = "augmentation_failed"
    STORAGE_UPLOAD_FAILED = "storage_upload_failed"
    PERSISTENCE_VALIDATION_ERROR = "persistence_validation_error"
    PERSISTENCE_FAILED = "persistence_failed"
    NOTIFICATION_UNAVAILABLE = "notification_unavailable"
    NOTIFICATION_FAILED = "notification_failed"
    UNEXPECTED = "unexpected"


_KIND_BY_ERROR = {
    CodeGenerationFailed: FailureKind.CODE_GENERATION_FAILED,
    FontUnavailable: FailureKind.FONT_UNAVAILABLE,
    AugmentationFailed: FailureKind.AUGMENTATION_FAILED,
    StorageUploadFailed: FailureKind.STORAGE_UPLOAD_FAILED,
    PersistenceValidationError: FailureKind.PERSISTENCE_VALIDATION_ERROR,
    PersistenceFailed: FailureKind.PERSISTENCE_FAILED,
    NotificationUnavailable: FailureKind.NOTIFICATION_UNAVAILABLE,
    NotificationFailed: FailureKind.NOTIFICATION_FAILED,
}


def classify(error: BaseException) -> FailureKind:
    for error_type, kind in _KIND_BY_ERROR.items():
        if isinstance(error, error_type):
            return kind
    return FailureKind.UNEXPECTED


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Either a stage's success value or a tagged failure."""

    stage: str
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def fatal(self) -> bool:
        """Failures in absorbing stages never abort a run, whatever they raised."""
        if self.ok:
            return False
        return self.stage not in ABSORBING_STAGES

    @classmethod
    def success(cls, stage: str, value: T = None) -> "StageResult[T]":
        return cls(stage=stage, value=value)

    @classmethod
    def failed(cls, stage: str, error: BaseException) -> "StageResult[T]":
        return cls(stage=stage, failure=classify(error), error=error)

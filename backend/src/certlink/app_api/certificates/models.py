"""Certificate data models

The Certificate record is stored in DynamoDB with camelCase attribute names,
and the same aliases are used in API responses.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from certlink.shared.errors import PersistenceValidationError

FileType = Literal["pdf", "jpg", "jpeg", "png"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageLocator(BaseModel):
    """Where the final artifact bytes live in object storage"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    key: str = Field(..., min_length=1, description="Object key")
    bucket: str = Field(..., min_length=1, description="Bucket name")
    public_url: str = Field(..., min_length=1, alias="publicUrl", description="Public object URL")


class Certificate(BaseModel):
    """Persisted record of one ingested certificate"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Identifier assigned before any I/O")
    file_name: str = Field(..., min_length=1, alias="fileName")
    original_name: str = Field(..., min_length=1, alias="originalName")
    file_type: FileType = Field(..., alias="fileType")
    file_size: int = Field(..., gt=0, alias="fileSize", description="Size of the final artifact")
    storage_locator: StorageLocator = Field(..., alias="storageLocator")
    has_embedded_qr: bool = Field(False, alias="hasEmbeddedQR")
    qr_code: str = Field(..., min_length=1, alias="qrCode", description="QR code as a data URL")
    is_active: bool = Field(True, alias="isActive")
    upload_date: datetime = Field(default_factory=utcnow, alias="uploadDate")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    @classmethod
    def create(cls, **fields: Any) -> "Certificate":
        """
        Validate and build a Certificate.

        Raises:
            PersistenceValidationError: with one message per invalid field
        """
        try:
            return cls.model_validate(fields)
        except ValidationError as e:
            field_errors: Dict[str, str] = {}
            for error in e.errors():
                path = ".".join(str(part) for part in error.get("loc", ())) or "certificate"
                field_errors.setdefault(path, f"{path}: {error.get('msg')}")
            raise PersistenceValidationError(field_errors) from e

    def to_item(self) -> Dict[str, Any]:
        """Convert to a DynamoDB item body (without keys)."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Certificate":
        """Create from a DynamoDB item."""
        data = {k: v for k, v in item.items() if k not in ("PK", "SK")}
        # DynamoDB returns numbers as Decimal
        if "fileSize" in data:
            data["fileSize"] = int(data["fileSize"])
        return cls.model_validate(data)


class CertificateUploadData(BaseModel):
    """Payload returned by POST /upload"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    file_name: str = Field(..., alias="fileName")
    file_size: int = Field(..., alias="fileSize")
    file_type: str = Field(..., alias="fileType")
    upload_date: datetime = Field(..., alias="uploadDate")
    view_url: str = Field(..., alias="viewUrl")
    qr_code: str = Field(..., alias="qrCode", description="PNG data URL")
    download_url: str = Field(..., alias="downloadUrl")
    has_embedded_qr: bool = Field(..., alias="hasEmbeddedQR")


class CertificateUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Certificate uploaded successfully"
    data: CertificateUploadData


class CertificateInfo(BaseModel):
    """Metadata returned by GET /certificate/{id}/info"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    file_name: str = Field(..., alias="fileName")
    file_type: str = Field(..., alias="fileType")
    file_size: int = Field(..., alias="fileSize")
    upload_date: datetime = Field(..., alias="uploadDate")
    storage_location: str = Field(..., alias="storageLocation")


class CertificateInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: CertificateInfo


class InternCertificateRequest(BaseModel):
    """
    Request body for POST /send-intern-certificate.

    Fields are optional at the schema level so that missing values produce
    the endpoint's own 400 response rather than a generic validation error.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    role: Optional[str] = None
    certificate_id: Optional[str] = Field(None, alias="certificateId")

    def missing_fields(self) -> list:
        return [
            alias for name, alias in (
                ("name", "name"),
                ("email", "email"),
                ("start_date", "startDate"),
                ("end_date", "endDate"),
                ("role", "role"),
                ("certificate_id", "certificateId"),
            )
            if not (getattr(self, name) or "").strip()
        ]


class NotificationResponse(BaseModel):
    success: bool = True
    message: str
    delivered: bool

"""Certificate metadata repository

Records are keyed by the identifier the pipeline assigns up front, so the
repository never generates ids itself.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import boto3
from botocore.exceptions import ClientError

from certlink.shared.errors import PersistenceFailed
from ..models import Certificate, utcnow

logger = logging.getLogger(__name__)


class CertificateRepository(ABC):
    """Abstract interface for certificate metadata storage."""

    @abstractmethod
    async def save(self, certificate: Certificate) -> Certificate:
        """
        Persist a new certificate record.

        Raises:
            PersistenceFailed: If the record cannot be written or the id already exists
        """
        pass

    @abstractmethod
    async def get_by_id(self, certificate_id: str) -> Optional[Certificate]:
        """Return the record, or None if it does not exist."""
        pass

    @abstractmethod
    async def set_active(self, certificate_id: str, is_active: bool) -> Optional[Certificate]:
        """Toggle the soft-delete flag. Returns the updated record, or None if not found."""
        pass


class InMemoryCertificateRepository(CertificateRepository):
    """In-memory certificate storage (for local development and tests)."""

    def __init__(self):
        self._records: Dict[str, Certificate] = {}

    async def save(self, certificate: Certificate) -> Certificate:
        if certificate.id in self._records:
            raise PersistenceFailed(f"Certificate '{certificate.id}' already exists")
        self._records[certificate.id] = certificate.model_copy(deep=True)
        return certificate

    async def get_by_id(self, certificate_id: str) -> Optional[Certificate]:
        record = self._records.get(certificate_id)
        return record.model_copy(deep=True) if record else None

    async def set_active(self, certificate_id: str, is_active: bool) -> Optional[Certificate]:
        record = self._records.get(certificate_id)
        if not record:
            return None
        updated = record.model_copy(update={"is_active": is_active, "updated_at": utcnow()})
        self._records[certificate_id] = updated
        return updated.model_copy(deep=True)


class DynamoDBCertificateRepository(CertificateRepository):
    """
    DynamoDB-backed certificate storage.

    Item layout:
        PK: CERTIFICATE#{id}
        SK: METADATA
    """

    def __init__(self, table_name: str, region: Optional[str] = None, dynamodb=None):
        """
        Initialize repository with DynamoDB table.

        Args:
            table_name: DynamoDB table name
            region: AWS region
            dynamodb: Optional pre-built boto3 DynamoDB resource (tests inject a stubbed one)
        """
        self.table_name = table_name
        self._dynamodb = dynamodb or boto3.resource("dynamodb", region_name=region)
        self._table = self._dynamodb.Table(self.table_name)

        logger.info(f"Initialized DynamoDB certificate repository: table={self.table_name}")

    @staticmethod
    def _key(certificate_id: str) -> Dict[str, str]:
        return {"PK": f"CERTIFICATE#{certificate_id}", "SK": "METADATA"}

    async def save(self, certificate: Certificate) -> Certificate:
        item = {**self._key(certificate.id), **certificate.to_item()}

        try:
            await asyncio.to_thread(
                self._table.put_item,
                Item=item,
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise PersistenceFailed(f"Certificate '{certificate.id}' already exists") from e
            logger.error(f"Error saving certificate {certificate.id}: {e}")
            raise PersistenceFailed("Failed to save certificate metadata", cause=e) from e

        logger.info(f"Saved certificate: {certificate.id}")
        return certificate

    async def get_by_id(self, certificate_id: str) -> Optional[Certificate]:
        try:
            response = await asyncio.to_thread(
                self._table.get_item,
                Key=self._key(certificate_id),
            )
        except ClientError as e:
            logger.error(f"Error getting certificate {certificate_id}: {e}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return Certificate.from_item(item)

    async def set_active(self, certificate_id: str, is_active: bool) -> Optional[Certificate]:
        try:
            response = await asyncio.to_thread(
                self._table.update_item,
                Key=self._key(certificate_id),
                UpdateExpression="SET isActive = :active, updatedAt = :now",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeValues={
                    ":active": is_active,
                    ":now": utcnow().isoformat(),
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            logger.error(f"Error updating certificate {certificate_id}: {e}")
            raise

        logger.info(f"Set certificate {certificate_id} isActive={is_active}")
        return Certificate.from_item(response["Attributes"])


def create_certificate_repository(
    table_name: Optional[str],
    region: Optional[str] = None,
) -> CertificateRepository:
    """
    Create the appropriate repository for the configuration.

    Returns:
        DynamoDBCertificateRepository if a table is configured, otherwise in-memory storage
    """
    if table_name:
        return DynamoDBCertificateRepository(table_name=table_name, region=region)

    logger.info(
        "CERTIFICATES_TABLE_NAME not set. Using in-memory certificate storage. "
        "This will not work in distributed deployments."
    )
    return InMemoryCertificateRepository()

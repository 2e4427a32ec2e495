"""Artifact storage for final certificate files"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from certlink.shared.config import StorageConfig
from certlink.shared.errors import StorageUploadFailed
from ..models import StorageLocator

logger = logging.getLogger(__name__)


def generate_object_key(prefix: str, extension: str) -> str:
    """Collision-resistant key under the certificates namespace."""
    extension = extension.lower().lstrip(".")
    return f"{prefix.strip('/')}/{uuid.uuid4()}.{extension}"


class ArtifactStore(ABC):
    """Abstract interface for durable artifact storage."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        content_type: str,
        original_name: str,
        extension: str,
    ) -> StorageLocator:
        """
        Upload final artifact bytes as a publicly readable object.

        Args:
            data: Artifact bytes
            content_type: MIME type stored with the object
            original_name: Uploader's file name, kept as object metadata
            extension: Normalized file extension used in the key

        Returns:
            StorageLocator for the stored object

        Raises:
            StorageUploadFailed: If the object could not be stored
        """
        pass

    @abstractmethod
    async def download(self, key: str, bucket: str) -> bytes:
        """Read an object's bytes back."""
        pass


class InMemoryArtifactStore(ArtifactStore):
    """In-memory artifact storage (for local development and tests)."""

    def __init__(self, bucket: str = "local-certificates", prefix: str = "certificates"):
        self.bucket = bucket
        self.prefix = prefix
        # Format: {(bucket, key): (content_type, metadata, data)}
        self.objects: Dict[Tuple[str, str], Tuple[str, Dict[str, str], bytes]] = {}

    async def upload(self, data, content_type, original_name, extension) -> StorageLocator:
        key = generate_object_key(self.prefix, extension)
        metadata = {"originalName": quote(original_name, safe="")}
        self.objects[(self.bucket, key)] = (content_type, metadata, bytes(data))
        return StorageLocator(
            key=key,
            bucket=self.bucket,
            public_url=f"memory://{self.bucket}/{key}",
        )

    async def download(self, key: str, bucket: str) -> bytes:
        try:
            return self.objects[(bucket, key)][2]
        except KeyError:
            raise FileNotFoundError(f"Object not found: {bucket}/{key}")


class S3ArtifactStore(ArtifactStore):
    """S3-backed artifact storage."""

    def __init__(self, config: StorageConfig, client=None):
        """
        Initialize the S3 store.

        Args:
            config: Immutable storage configuration
            client: Optional pre-built boto3 S3 client (tests inject a stubbed one)
        """
        if not config.bucket:
            raise ValueError("S3 bucket name is required for S3ArtifactStore")

        self.config = config
        self.bucket = config.bucket
        self._client = client or boto3.client(
            "s3",
            region_name=config.region,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            endpoint_url=config.endpoint_url,
        )

        logger.info(f"Initialized S3 artifact store: bucket={self.bucket}, region={config.region}")

    def get_public_url(self, key: str) -> str:
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.config.region}.amazonaws.com/{key}"

    async def upload(self, data, content_type, original_name, extension) -> StorageLocator:
        key = generate_object_key(self.config.prefix, extension)

        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="public-read",
                Metadata={"originalName": quote(original_name, safe="")},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload error for {key}: {e}")
            raise StorageUploadFailed("Failed to upload file to storage", cause=e) from e

        logger.info(f"Uploaded certificate artifact to s3://{self.bucket}/{key} ({len(data)} bytes)")
        return StorageLocator(key=key, bucket=self.bucket, public_url=self.get_public_url(key))

    async def download(self, key: str, bucket: str) -> bytes:
        try:
            response = await asyncio.to_thread(self._client.get_object, Bucket=bucket, Key=key)
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                raise FileNotFoundError(f"Object not found: {bucket}/{key}") from e
            logger.error(f"S3 download error for {bucket}/{key}: {e}")
            raise


def create_artifact_store(config: StorageConfig) -> ArtifactStore:
    """
    Create the appropriate artifact store for the configuration.

    Returns:
        S3ArtifactStore if a bucket is configured, otherwise in-memory storage
    """
    if config.bucket:
        return S3ArtifactStore(config)

    logger.warning(
        "S3_BUCKET_NAME not set. Using in-memory artifact storage. "
        "Stored certificates will be lost on restart."
    )
    return InMemoryArtifactStore(prefix=config.prefix)

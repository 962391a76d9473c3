"""
File storage for submission PDFs.

``FileStorage`` is the interface the rest of the package depends on;
``R2FileStorage`` implements it on Cloudflare R2 (or any S3-compatible
store) through boto3. Instances are constructed explicitly and injected.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from classgrade.config import Settings
from classgrade.errors import StorageError

logger = logging.getLogger(__name__)


class FileStorage(ABC):
    """Object storage keyed by file key."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the object's content. Raises StorageError on failure."""
        ...

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        """Store an object. Raises StorageError on failure."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete an object. Raises StorageError on failure."""
        ...


class R2FileStorage(FileStorage):
    """FileStorage backed by an S3-compatible bucket."""

    def __init__(self, bucket: str, client: Any):
        """
        Args:
            bucket: Bucket holding submission files.
            client: A boto3 S3 client.
        """
        self._bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "R2FileStorage":
        """
        Build a storage instance from the R2 settings.

        Raises:
            StorageError: If the R2 settings are incomplete.
        """
        if not settings.storage_configured:
            raise StorageError(
                "R2 storage is not configured (set R2_ACCOUNT_ID or R2_ENDPOINT_URL, "
                "R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY and R2_BUCKET_NAME)"
            )

        client = boto3.client(
            "s3",
            region_name="auto",
            endpoint_url=settings.storage_endpoint,
            aws_access_key_id=settings.r2_access_key_id,
            aws_secret_access_key=settings.r2_secret_access_key,
        )
        return cls(settings.r2_bucket_name, client)

    def get(self, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
            return resp["Body"].read()
        except ClientError as e:
            code = (e.response.get("Error") or {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                raise StorageError(f"File '{key}' does not exist", cause=e) from e
            raise StorageError(f"Failed to read '{key}': {code}", cause=e) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read '{key}': {e}", cause=e) from e

    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to store '{key}': {e}", cause=e) from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete '{key}': {e}", cause=e) from e


def public_file_url(settings: Settings, file_key: str | None) -> str | None:
    """Public URL of a stored file, or None without a key or public base URL."""
    if not file_key or not settings.r2_public_url:
        return None
    return f"{settings.r2_public_url}/{file_key}"

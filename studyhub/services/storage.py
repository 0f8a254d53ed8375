"""S3 object storage for uploaded study materials."""

import asyncio
import secrets
import time
from urllib.parse import quote
from uuid import UUID

import boto3
from botocore.exceptions import ClientError

from studyhub.config import get_settings

settings = get_settings()


class StorageError(Exception):
    """An object storage operation failed."""


def build_object_key(user_id: UUID, file_name: str) -> str:
    """
    Build a collision-resistant key: <prefix>/<user_id>/<ms timestamp>-<random>.<ext>.

    The original file name is not part of the key, only its extension.
    """
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
    stamp = int(time.time() * 1000)
    return f"{settings.storage_prefix}/{user_id}/{stamp}-{secrets.token_hex(6)}.{ext}"


class StorageService:
    """Service for interacting with S3 (or an S3-compatible endpoint) for file storage."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    async def upload_file(self, file_key: str, file_data: bytes, content_type: str) -> None:
        """
        Upload a file to storage (server-side upload).

        Raises:
            StorageError: If the S3 operation fails
        """
        try:
            # boto3 is blocking; keep it off the event loop
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket,
                Key=file_key,
                Body=file_data,
                ContentType=content_type,
            )
        except ClientError as e:
            raise StorageError(f"Failed to upload file to S3: {e}") from e

    async def delete_file(self, file_key: str) -> None:
        """
        Delete a file from storage.

        Raises:
            StorageError: If the S3 operation fails
        """
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket, Key=file_key)
        except ClientError as e:
            raise StorageError(f"Failed to delete file from S3: {e}") from e

    def public_url(self, file_key: str) -> str:
        """Public address of an object. Assumes the bucket allows public reads."""
        key = quote(file_key)
        if settings.aws_s3_endpoint_url:
            return f"{settings.aws_s3_endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{settings.aws_s3_region}.amazonaws.com/{key}"


# Singleton instance
storage_service = StorageService()

from typing import Optional, Protocol
import asyncio
import logging

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from rentals.errors import ConfigurationError, StorageError

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    async def store(self, data: bytes, content_type: str, key: str) -> str:
        """Persist ``data`` under ``key`` and return its public URL"""
        ...


class S3ObjectStorage:
    """S3 (or MinIO) bucket holding property photos"""

    def __init__(self, bucket_name: str, region: Optional[str] = None,
                 endpoint_url: Optional[str] = None, public_base: Optional[str] = None):
        if not bucket_name:
            raise ConfigurationError("Missing S3_BUCKET_NAME environment variable.")
        self.bucket_name = bucket_name
        self.region = region or "us-east-1"
        self.endpoint_url = endpoint_url
        self.public_base = (public_base or "").rstrip("/")
        self.s3_client = boto3.client(
            "s3",
            region_name=self.region,
            endpoint_url=endpoint_url,
            config=BotoConfig(signature_version="s3v4"),
        )

    @classmethod
    def from_settings(cls, settings) -> "S3ObjectStorage":
        return cls(
            bucket_name=settings.s3_bucket_name,
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
            public_base=settings.s3_public_base,
        )

    def public_url(self, key: str) -> str:
        if self.public_base:
            return f"{self.public_base}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def _put(self, data: bytes, content_type: str, key: str) -> str:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading {key} to bucket {self.bucket_name}: {e}")
            raise StorageError(f"Upload of {key} failed: {e}") from e
        logger.info(f"Uploaded {key} ({len(data)} bytes)")
        return self.public_url(key)

    async def store(self, data: bytes, content_type: str, key: str) -> str:
        # boto3 is blocking; keep the event loop free
        return await asyncio.to_thread(self._put, data, content_type, key)

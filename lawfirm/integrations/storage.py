"""
integrations/storage.py
-----------------------
S3 object storage wrapper.

Object keys are always tenant-prefixed:

    {organization_id}/{folder}/{random_id}.{ext}   (folder optional)

boto3 is blocking, so every call is pushed to the threadpool to keep the
event loop free.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from lawfirm.core.config import settings
from lawfirm.core.errors import UpstreamFailure
from lawfirm.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_URL_EXPIRY = 3600  # seconds


@dataclass
class UploadResult:
    key: str
    url: str


@dataclass
class PresignedUpload:
    upload_url: str
    key: str
    expires_at: datetime


@dataclass
class ObjectMetadata:
    size: int
    content_type: str
    last_modified: Optional[datetime]
    metadata: Dict[str, str] = field(default_factory=dict)


def build_object_key(organization_id: str, file_name: str, folder: Optional[str] = None) -> str:
    extension = file_name.rsplit(".", 1)[-1] if "." in file_name else ""
    unique_id = uuid.uuid4().hex
    if folder:
        return f"{organization_id}/{folder}/{unique_id}.{extension}"
    return f"{organization_id}/{unique_id}.{extension}"


class S3Storage:

    def __init__(self, bucket: Optional[str] = None) -> None:
        self.bucket = bucket or settings.AWS_S3_BUCKET
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=settings.AWS_REGION,
                endpoint_url=settings.AWS_S3_ENDPOINT_URL or None,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                config=Config(signature_version="s3v4"),
            )
        return self._client

    # ── Upload ────────────────────────────────────────────────────────────────

    async def upload_file(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
        organization_id: str,
        folder: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        is_public: bool = False,
    ) -> UploadResult:
        """
        Store bytes under a fresh tenant-prefixed key.

        Returns the key and either the public URL or a presigned download URL.

        Raises:
            UpstreamFailure: If S3 rejects the upload.
        """
        key = build_object_key(organization_id, file_name, folder)
        try:
            await run_in_threadpool(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
                Metadata={
                    "originalName": file_name,
                    "organizationId": organization_id,
                    **(metadata or {}),
                },
                ACL="public-read" if is_public else "private",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload failed", key=key, error=str(exc))
            raise UpstreamFailure("Upload failed") from exc

        if is_public:
            url = f"https://{self.bucket}.s3.amazonaws.com/{key}"
        else:
            url = await self.get_signed_download_url(key)
        logger.info("Object uploaded", key=key, size=len(data))
        return UploadResult(key=key, url=url)

    # ── Presigned URLs ────────────────────────────────────────────────────────

    async def get_signed_download_url(self, key: str, expires_in: int = DEFAULT_URL_EXPIRY) -> str:
        return await run_in_threadpool(
            self.client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    async def get_signed_upload_url(
        self, key: str, mime_type: str, expires_in: int = DEFAULT_URL_EXPIRY
    ) -> str:
        return await run_in_threadpool(
            self.client.generate_presigned_url,
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": mime_type},
            ExpiresIn=expires_in,
        )

    async def generate_presigned_upload(
        self,
        organization_id: str,
        file_name: str,
        mime_type: str,
        folder: Optional[str] = None,
    ) -> PresignedUpload:
        """Presigned PUT for direct browser uploads."""
        key = build_object_key(organization_id, file_name, folder)
        upload_url = await self.get_signed_upload_url(key, mime_type)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=DEFAULT_URL_EXPIRY)
        return PresignedUpload(upload_url=upload_url, key=key, expires_at=expires_at)

    # ── Read / delete ─────────────────────────────────────────────────────────

    async def download_file(self, key: str) -> bytes:
        """
        Raises:
            UpstreamFailure: If the object cannot be fetched.
        """
        try:
            response = await run_in_threadpool(self.client.get_object, Bucket=self.bucket, Key=key)
            return await run_in_threadpool(response["Body"].read)
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 download failed", key=key, error=str(exc))
            raise UpstreamFailure("Failed to download document") from exc

    async def delete_file(self, key: str) -> bool:
        try:
            await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=key)
            return True
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 delete failed", key=key, error=str(exc))
            return False

    async def get_file_metadata(self, key: str) -> Optional[ObjectMetadata]:
        try:
            response = await run_in_threadpool(self.client.head_object, Bucket=self.bucket, Key=key)
        except ClientError:
            return None
        return ObjectMetadata(
            size=response.get("ContentLength", 0),
            content_type=response.get("ContentType", "application/octet-stream"),
            last_modified=response.get("LastModified"),
            metadata=response.get("Metadata", {}),
        )


# Singleton, shared across all requests
storage = S3Storage()

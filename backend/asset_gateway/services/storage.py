import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from asset_gateway.core.config import Settings
from asset_gateway.core.errors import BackingStoreError, ObjectNotFound, UploadFailure
from asset_gateway.services.keys import build_object_url

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def describe_error(exc: Exception) -> tuple[str, str | None]:
    """Reduce a botocore error to a client-safe message and provider code."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code") or None
        message = error.get("Message") or code or "Unknown storage error"
        return message, code
    if isinstance(exc, BotoCoreError):
        return str(exc), None
    return type(exc).__name__, None


@dataclass
class StoredObject:
    key: str
    body: Any
    content_type: str | None = None
    content_length: int | None = None
    etag: str | None = None

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        body = self.body
        if not hasattr(body, "iter_chunks"):
            # Client shapes without a stream interface hand over the whole payload.
            data = body.read() if hasattr(body, "read") else body
            if data:
                yield bytes(data)
            return

        chunks = body.iter_chunks(chunk_size)
        try:
            while True:
                chunk = await asyncio.to_thread(next, chunks, None)
                if chunk is None:
                    break
                if chunk:
                    yield chunk
        finally:
            await asyncio.to_thread(body.close)


class StorageService:
    """S3 backend shared by every request; holds no per-request state."""

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self.settings = settings
        self.bucket = settings.aws_bucket_name or ""
        self.region = settings.aws_region or ""
        self.client = client or self._build_client(settings)

    @staticmethod
    def _build_client(settings: Settings) -> Any:
        endpoint = str(settings.s3_endpoint) if settings.s3_endpoint else None
        session = boto3.session.Session()
        return session.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if endpoint else "virtual"},
                connect_timeout=settings.s3_connect_timeout,
                read_timeout=settings.s3_read_timeout,
                retries={"mode": "standard", "total_max_attempts": settings.s3_max_attempts},
                max_pool_connections=settings.s3_max_pool_connections,
            ),
        )

    def close(self) -> None:
        self.client.close()

    def object_url(self, key: str) -> str:
        if self.settings.s3_endpoint:
            base = str(self.settings.s3_endpoint).rstrip("/")
            return f"{base}/{self.bucket}/{quote(key, safe='/')}"
        return build_object_url(self.bucket, self.region, key)

    async def fetch_object(self, key: str) -> StoredObject:
        def _get() -> dict[str, Any]:
            return self.client.get_object(Bucket=self.bucket, Key=key)

        try:
            response = await asyncio.to_thread(_get)
        except (BotoCoreError, ClientError) as exc:
            message, code = describe_error(exc)
            logger.warning(
                "get_object failed bucket=%s key=%s code=%s: %s",
                self.bucket,
                key,
                code,
                message,
            )
            if code in NOT_FOUND_CODES:
                raise ObjectNotFound(key, message, code=code) from exc
            raise BackingStoreError(message, code=code) from exc

        return StoredObject(
            key=key,
            body=response["Body"],
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
            etag=response.get("ETag"),
        )

    async def put_object(self, key: str, data: bytes, content_type: str) -> str | None:
        def _put() -> dict[str, Any]:
            return self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )

        try:
            response = await asyncio.to_thread(_put)
        except (BotoCoreError, ClientError) as exc:
            message, code = describe_error(exc)
            logger.error(
                "put_object failed bucket=%s key=%s code=%s: %s",
                self.bucket,
                key,
                code,
                message,
            )
            raise UploadFailure(f"S3 upload failed: {message}", code=code) from exc
        return response.get("ETag")

    def generate_presigned_url(
        self,
        client_method: str,
        params: dict[str, Any],
        expires_in: int,
    ) -> str:
        return self.client.generate_presigned_url(
            client_method,
            Params={"Bucket": self.bucket, **params},
            ExpiresIn=expires_in,
        )

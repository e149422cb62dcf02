import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from asset_gateway.core.errors import MissingParameter, UploadTooLarge
from asset_gateway.services.keys import (
    generate_filename,
    join_key,
    resolve_content_type,
    validate_key,
)
from asset_gateway.services.signing import SignedUrlIssuer
from asset_gateway.services.storage import StorageService

logger = logging.getLogger(__name__)


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StoredUpload:
    url: str
    key: str


@dataclass(frozen=True)
class PresignedUpload:
    presigned_url: str
    file_url: str
    key: str
    expires_at: datetime


async def read_payload(stream: AsyncReadable, limit: int) -> bytes:
    """Read an uploaded file, refusing to hold more than ``limit`` bytes."""
    data = await stream.read(limit + 1)
    if len(data) > limit:
        raise UploadTooLarge(f"File exceeds the maximum upload size of {limit} bytes")
    return data


class UploadOrchestrator:
    def __init__(
        self,
        storage: StorageService,
        signer: SignedUrlIssuer,
        max_upload_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        self.storage = storage
        self.signer = signer
        self.max_upload_bytes = max_upload_bytes

    async def upload(
        self,
        data: bytes,
        original_name: str,
        content_type: str | None = None,
        folder: str | None = "",
        file_name: str | None = None,
        caller_id: str | None = None,
    ) -> StoredUpload:
        if len(data) > self.max_upload_bytes:
            raise UploadTooLarge(
                f"File exceeds the maximum upload size of {self.max_upload_bytes} bytes"
            )
        name = file_name or generate_filename(original_name)
        key = validate_key(join_key(folder, name))
        resolved_type = resolve_content_type(file_name or original_name, content_type)

        logger.info(
            "Uploading %s bytes to %s (content_type=%s, caller=%s)",
            len(data),
            key,
            resolved_type,
            caller_id,
        )
        await self.storage.put_object(key, data, resolved_type)

        url = self.storage.object_url(key)
        logger.info("File uploaded successfully: %s", url)
        return StoredUpload(url=url, key=key)

    def presign(
        self,
        file_name: str,
        content_type: str,
        folder: str | None = "",
        file_size: int | None = None,
        caller_id: str | None = None,
    ) -> PresignedUpload:
        if not file_name:
            raise MissingParameter("Missing fileName")
        if not content_type:
            raise MissingParameter("Missing contentType")

        key = validate_key(join_key(folder, generate_filename(file_name)))
        signed = self.signer.issue(key, "PUT", content_type=content_type)
        logger.info(
            "Issued presigned upload for %s (declared size=%s, caller=%s)",
            key,
            file_size,
            caller_id,
        )
        return PresignedUpload(
            presigned_url=signed.url,
            file_url=self.storage.object_url(key),
            key=key,
            expires_at=signed.expires_at,
        )

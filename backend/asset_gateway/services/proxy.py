"""Read path: stream an object from the bucket or redirect to a signed URL.

A request goes through at most two attempts. The direct fetch is tried once;
if it fails for any reason a read URL is signed and the client is redirected
there, which gives the browser an independently authorized second attempt.
Only when signing fails too does the caller see ``ObjectNotFound``.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from urllib.parse import quote

from asset_gateway.core.errors import BackingStoreError, ObjectNotFound, SigningFailure
from asset_gateway.services.keys import resolve_content_type
from asset_gateway.services.signing import SignedUrl, SignedUrlIssuer
from asset_gateway.services.storage import StorageService

logger = logging.getLogger(__name__)


@dataclass
class ObjectStream:
    key: str
    content_type: str
    content_length: int | None
    chunks: AsyncIterator[bytes]
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SignedRedirect:
    signed_url: SignedUrl

    @property
    def location(self) -> str:
        return self.signed_url.url


ProxyResponse = ObjectStream | SignedRedirect


def content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'


class StreamingProxy:
    def __init__(
        self,
        storage: StorageService,
        signer: SignedUrlIssuer,
        chunk_size: int = 64 * 1024,
        cache_max_age: int = 86400,
    ) -> None:
        self.storage = storage
        self.signer = signer
        self.chunk_size = chunk_size
        self.cache_max_age = cache_max_age

    async def serve(self, key: str, attachment_name: str | None = None) -> ProxyResponse:
        logger.info("Proxying object %s", key)
        try:
            stored = await self.storage.fetch_object(key)
        except (ObjectNotFound, BackingStoreError) as exc:
            return self.fall_back(key, exc)

        headers = {"Cache-Control": f"public, max-age={self.cache_max_age}"}
        if stored.content_length is not None:
            headers["Content-Length"] = str(stored.content_length)
        if stored.etag:
            headers["ETag"] = stored.etag
        if attachment_name:
            headers["Content-Disposition"] = content_disposition(attachment_name)

        return ObjectStream(
            key=key,
            content_type=stored.content_type or resolve_content_type(key),
            content_length=stored.content_length,
            chunks=stored.iter_chunks(self.chunk_size),
            headers=headers,
        )

    def fall_back(
        self, key: str, fetch_error: ObjectNotFound | BackingStoreError
    ) -> SignedRedirect:
        """Map a failed direct fetch to a redirect, or to ObjectNotFound if signing fails."""
        reason = fetch_error.reason if isinstance(fetch_error, ObjectNotFound) else fetch_error.message
        try:
            signed = self.signer.issue(key, "GET")
        except SigningFailure as exc:
            logger.error("Fallback signing failed for %s after fetch error: %s", key, reason)
            raise ObjectNotFound(key, reason, code=fetch_error.code) from exc

        logger.info("Direct fetch of %s failed (%s); redirecting to signed url", key, reason)
        return SignedRedirect(signed)

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

from botocore.exceptions import BotoCoreError, ClientError

from asset_gateway.core.config import MAX_SIGNED_URL_TTL
from asset_gateway.core.errors import SigningFailure
from asset_gateway.services.keys import validate_key
from asset_gateway.services.storage import StorageService, describe_error

logger = logging.getLogger(__name__)

Verb = Literal["GET", "PUT"]

_CLIENT_METHODS = {"GET": "get_object", "PUT": "put_object"}


@dataclass(frozen=True)
class SignedUrl:
    url: str
    key: str
    method: Verb
    issued_at: datetime
    expires_at: datetime

    @property
    def ttl(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())


class SignedUrlIssuer:
    """Issues fresh time-limited URLs for single objects; nothing is cached."""

    def __init__(
        self,
        storage: StorageService,
        read_ttl: int = 3600,
        write_ttl: int = 900,
    ) -> None:
        self.storage = storage
        self.read_ttl = read_ttl
        self.write_ttl = write_ttl

    def issue(
        self,
        key: str,
        method: Verb = "GET",
        ttl: int | None = None,
        content_type: str | None = None,
    ) -> SignedUrl:
        client_method = _CLIENT_METHODS.get(method)
        if client_method is None:
            raise ValueError(f"Unsupported verb for signing: {method}")
        if ttl is None:
            ttl = self.read_ttl if method == "GET" else self.write_ttl
        if not 1 <= ttl <= MAX_SIGNED_URL_TTL:
            raise ValueError(f"Signed URL ttl must be between 1 and {MAX_SIGNED_URL_TTL} seconds")
        validate_key(key)

        params: dict[str, str] = {"Key": key}
        if method == "PUT" and content_type:
            params["ContentType"] = content_type

        issued_at = datetime.now(timezone.utc)
        try:
            url = self.storage.generate_presigned_url(client_method, params, ttl)
        except (BotoCoreError, ClientError) as exc:
            message, code = describe_error(exc)
            logger.error(
                "Signing %s failed bucket=%s key=%s: %s",
                method,
                self.storage.bucket,
                key,
                message,
            )
            raise SigningFailure(
                f"Failed to generate signed URL for key: {key}", code=code
            ) from exc

        logger.debug("Signed %s url for %s (expires in %ss)", method, key, ttl)
        return SignedUrl(
            url=url,
            key=key,
            method=method,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=ttl),
        )

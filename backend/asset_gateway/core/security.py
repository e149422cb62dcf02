from dataclasses import dataclass
from typing import Any

from jose import JWTError, jwt

from asset_gateway.core.config import Settings


class TokenError(Exception):
    """Raised when token validation fails."""


@dataclass(frozen=True)
class Caller:
    """Identity carried by a session token issued by the auth layer."""

    id: str


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    if not settings.jwt_secret_key:
        raise TokenError("Token verification is not configured")
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise TokenError("Invalid token") from exc


def caller_from_token(token: str, settings: Settings) -> Caller:
    payload = decode_access_token(token, settings)
    # The session layer puts the account id in "id"; standard tokens use "sub".
    caller_id = payload.get("id") or payload.get("sub")
    if not caller_id:
        raise TokenError("Invalid token payload")
    return Caller(id=str(caller_id))

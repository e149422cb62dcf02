import logging

from fastapi import Cookie, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from asset_gateway.core.config import Settings
from asset_gateway.core.errors import AuthenticationRequired
from asset_gateway.core.security import Caller, TokenError, caller_from_token
from asset_gateway.services.proxy import StreamingProxy
from asset_gateway.services.signing import SignedUrlIssuer
from asset_gateway.services.uploads import UploadOrchestrator

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_signer(request: Request) -> SignedUrlIssuer:
    return request.app.state.signer


def get_proxy(request: Request) -> StreamingProxy:
    return request.app.state.proxy


def get_uploader(request: Request) -> UploadOrchestrator:
    return request.app.state.uploader


async def get_current_caller(
    settings: Settings = Depends(get_app_settings),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    access_token: str | None = Cookie(default=None),
) -> Caller | None:
    token = access_token or (credentials.credentials if credentials else None)
    if not token:
        if settings.upload_auth_required:
            raise AuthenticationRequired("No authentication token found")
        return None

    try:
        return caller_from_token(token, settings)
    except TokenError as exc:
        if settings.upload_auth_required:
            raise AuthenticationRequired("Invalid or expired token") from exc
        logger.info("Ignoring unverifiable token on upload request: %s", exc)
        return None

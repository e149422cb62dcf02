from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, RedirectResponse, Response, StreamingResponse

from asset_gateway.api.deps import get_proxy, get_signer
from asset_gateway.core.errors import GatewayError, MissingParameter
from asset_gateway.schemas import ErrorResponse, SignedUrlResponse
from asset_gateway.services.keys import join_key, resolve_key
from asset_gateway.services.proxy import ProxyResponse, SignedRedirect, StreamingProxy
from asset_gateway.services.signing import SignedUrlIssuer

router = APIRouter(prefix="/api/s3-proxy", tags=["s3-proxy"])

VCARD_FOLDER = "vcards"


def _to_response(result: ProxyResponse) -> Response:
    if isinstance(result, SignedRedirect):
        return RedirectResponse(result.location, status_code=302)
    # Content-Type goes in verbatim; media_type would append a charset to text/*.
    headers = {"Content-Type": result.content_type, **result.headers}
    return StreamingResponse(result.chunks, headers=headers)


async def _serve(
    proxy: StreamingProxy,
    *,
    key: str | None = None,
    folder: str | None = None,
    filename: str | None = None,
    attachment_name: str | None = None,
) -> Response:
    try:
        object_key = resolve_key(key=key, folder=folder, filename=filename)
        result = await proxy.serve(object_key, attachment_name=attachment_name)
    except GatewayError as exc:
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    return _to_response(result)


@router.get(
    "/signed-url",
    response_model=SignedUrlResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_signed_url(
    key: str | None = Query(default=None),
    url: str | None = Query(default=None),
    signer: SignedUrlIssuer = Depends(get_signer),
) -> SignedUrlResponse:
    if not key and not url:
        raise MissingParameter("Missing key or url parameter")
    object_key = resolve_key(key=key, url=url)
    signed = signer.issue(object_key, "GET")
    return SignedUrlResponse(signed_url=signed.url)


@router.get("/direct-key")
async def proxy_direct_key(
    key: str | None = Query(default=None),
    proxy: StreamingProxy = Depends(get_proxy),
) -> Response:
    return await _serve(proxy, key=key)


@router.get("/vcard/{filename}")
async def download_vcard(
    filename: str,
    proxy: StreamingProxy = Depends(get_proxy),
) -> Response:
    return await _serve(
        proxy,
        key=join_key(VCARD_FOLDER, filename),
        attachment_name=filename,
    )


@router.get("/{folder}/{filename}")
async def proxy_object(
    folder: str,
    filename: str,
    proxy: StreamingProxy = Depends(get_proxy),
) -> Response:
    return await _serve(proxy, folder=folder, filename=filename)

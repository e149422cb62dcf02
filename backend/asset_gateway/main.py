import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from asset_gateway.api.routers import proxy as proxy_router
from asset_gateway.api.routers import uploads as uploads_router
from asset_gateway.core.config import Settings, get_settings
from asset_gateway.core.errors import GatewayError
from asset_gateway.schemas import ErrorResponse
from asset_gateway.services.proxy import StreamingProxy
from asset_gateway.services.signing import SignedUrlIssuer
from asset_gateway.services.storage import StorageService
from asset_gateway.services.uploads import UploadOrchestrator

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, code=exc.code)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        body.model_dump(by_alias=True, exclude_none=True),
        status_code=exc.status_code,
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query"))
        problems.append(f"{field}: {error['msg']}" if field else error["msg"])
    body = ErrorResponse(error=f"Invalid request: {'; '.join(problems)}", code="ValidationError")
    return JSONResponse(
        body.model_dump(by_alias=True, exclude_none=True),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.storage.close()


def create_app(
    settings: Settings | None = None,
    storage: StorageService | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    settings.validate_for_startup()

    storage = storage or StorageService(settings)
    signer = SignedUrlIssuer(
        storage,
        read_ttl=settings.signed_url_ttl,
        write_ttl=settings.presigned_upload_ttl,
    )
    logger.info(
        "Object storage configured: bucket=%s region=%s access_key_configured=%s",
        storage.bucket,
        storage.region,
        bool(settings.aws_access_key_id),
    )

    app = FastAPI(
        debug=settings.debug,
        title="Asset Gateway API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.signer = signer
    app.state.proxy = StreamingProxy(
        storage,
        signer,
        chunk_size=settings.stream_chunk_size,
        cache_max_age=settings.proxy_cache_max_age,
    )
    app.state.uploader = UploadOrchestrator(
        storage,
        signer,
        max_upload_bytes=settings.max_upload_bytes,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(uploads_router.router)
    app.include_router(proxy_router.router)

    return app


app = create_app()

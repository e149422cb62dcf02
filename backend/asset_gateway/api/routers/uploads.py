from fastapi import APIRouter, Depends, File, Form, UploadFile

from asset_gateway.api.deps import get_current_caller, get_uploader
from asset_gateway.core.errors import MissingParameter
from asset_gateway.core.security import Caller
from asset_gateway.schemas import (
    ErrorResponse,
    PresignUploadRequest,
    PresignUploadResponse,
    UploadResponse,
)
from asset_gateway.services.uploads import UploadOrchestrator, read_payload

router = APIRouter(prefix="/api/upload-to-s3", tags=["uploads"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("", response_model=UploadResponse, responses=_ERRORS)
async def upload_to_s3(
    file: UploadFile | None = File(default=None),
    folder: str | None = Form(default=None),
    file_name: str | None = Form(default=None, alias="fileName"),
    uploader: UploadOrchestrator = Depends(get_uploader),
    caller: Caller | None = Depends(get_current_caller),
) -> UploadResponse:
    if file is None:
        raise MissingParameter("No file uploaded")

    try:
        data = await read_payload(file, uploader.max_upload_bytes)
    finally:
        await file.close()

    stored = await uploader.upload(
        data,
        original_name=file.filename or "upload",
        content_type=file.content_type,
        folder=folder,
        file_name=file_name or None,
        caller_id=caller.id if caller else None,
    )
    return UploadResponse(url=stored.url, key=stored.key)


@router.post("/get-presigned-url", response_model=PresignUploadResponse, responses=_ERRORS)
async def get_presigned_url(
    payload: PresignUploadRequest,
    uploader: UploadOrchestrator = Depends(get_uploader),
    caller: Caller | None = Depends(get_current_caller),
) -> PresignUploadResponse:
    presigned = uploader.presign(
        file_name=payload.file_name or "",
        content_type=payload.content_type or "",
        folder=payload.folder,
        file_size=payload.file_size,
        caller_id=caller.id if caller else None,
    )
    return PresignUploadResponse(
        presigned_url=presigned.presigned_url,
        file_url=presigned.file_url,
        key=presigned.key,
        expires_at=presigned.expires_at,
    )

from asset_gateway.schemas.storage import (
    ErrorResponse,
    PresignUploadRequest,
    PresignUploadResponse,
    SignedUrlResponse,
    UploadResponse,
)

__all__ = [
    "ErrorResponse",
    "SignedUrlResponse",
    "UploadResponse",
    "PresignUploadRequest",
    "PresignUploadResponse",
]

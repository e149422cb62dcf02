from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignedUrlResponse(CamelModel):
    success: bool = True
    signed_url: str


class UploadResponse(CamelModel):
    success: bool = True
    url: str
    key: str


class PresignUploadRequest(CamelModel):
    file_name: str | None = None
    content_type: str | None = None
    folder: str | None = None
    file_size: int | None = Field(default=None, ge=0)


class PresignUploadResponse(CamelModel):
    success: bool = True
    presigned_url: str
    file_url: str
    key: str
    expires_at: datetime


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    code: str | None = None

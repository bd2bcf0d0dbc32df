"""Photo upload and moderation data models."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from fotofi.models.base import CamelModel


class UploadActionRequest(CamelModel):
    """Request model for POST /photos/upload (create, sign, getETag, listParts)."""

    bucket_name: str
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    part_number: Optional[int] = Field(default=None, ge=1, le=10000)
    upload_id: Optional[str] = None
    action: Optional[Literal["getETag", "listParts"]] = None


class CompletedPartModel(BaseModel):
    """One entry of a completion request, in the storage API's casing."""

    model_config = ConfigDict(populate_by_name=True)

    etag: str = Field(alias="ETag")
    part_number: int = Field(alias="PartNumber", ge=1, le=10000)


class ListedPartModel(CompletedPartModel):
    size: Optional[int] = Field(default=None, alias="Size")


class CompleteUploadRequest(CamelModel):
    """Request model for PUT /photos/upload."""

    bucket_name: str
    file_name: str
    upload_id: str
    parts: list[CompletedPartModel]


class AbortUploadRequest(CamelModel):
    """Request model for DELETE /photos/upload."""

    bucket_name: str
    file_name: str
    upload_id: str


class CreateUploadResponse(CamelModel):
    upload_id: str


class SignPartResponse(CamelModel):
    signed_url: str


class ETagResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    etag: str = Field(alias="ETag")


class ListPartsResponse(CamelModel):
    parts: list[ListedPartModel]


class CompleteUploadResponse(CamelModel):
    message: str
    result: dict[str, Any]
    image_id: str


class AbortUploadResponse(CamelModel):
    message: str


class ModerateRequest(CamelModel):
    """Request model for POST /photos/moderate."""

    image_id: Optional[str] = None
    action: Optional[str] = None


class GuestSubmissionRequest(CamelModel):
    """Request model for POST /photos/submit."""

    name: Optional[str] = None
    email: Optional[str] = None
    face_photo: Optional[str] = None  # base64 data URL

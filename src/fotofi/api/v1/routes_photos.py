"""Photo upload, moderation and gallery API routes.

Error bodies keep the shapes the upload and moderation UIs read:
``{"error": ...}`` for upload calls and ``{"success": false, "error": ...}``
for moderation, gallery and submissions.
"""

import asyncio
import logging
import re
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from fotofi.api.deps import ModerationStoreDep, SubmissionStoreDep, UploadIssuerDep
from fotofi.models.photos import (
    AbortUploadRequest,
    AbortUploadResponse,
    CompleteUploadRequest,
    CompleteUploadResponse,
    CreateUploadResponse,
    ETagResponse,
    GuestSubmissionRequest,
    ListedPartModel,
    ListPartsResponse,
    ModerateRequest,
    SignPartResponse,
    UploadActionRequest,
)
from fotofi.services.submissions import SubmissionStoreError
from fotofi.storage.exceptions import (
    InvalidPartListError,
    PartNotFoundError,
    StorageConfigurationError,
    StorageError,
)
from fotofi.storage.moderation_store import ImageNotFoundError, ModerationAction
from fotofi.storage.multipart import UploadedPart

router = APIRouter(prefix="/photos", tags=["photos"])
logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _read_json(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "body"
    return f"Invalid field '{field}': {first['msg']}"


@router.post("/upload")
async def upload_action(request: Request, issuer: UploadIssuerDep):
    """Create a multipart upload, sign a part URL, or look up part ETags.

    - no uploadId: create, returns {uploadId}
    - uploadId + partNumber: sign, returns {signedUrl}
    - action="getETag": returns {ETag} of one uploaded part
    - action="listParts": returns {parts} already uploaded, for resuming
    """
    body = await _read_json(request)
    if not body or not body.get("bucketName"):
        return _error(400, "Bucket name is required")

    try:
        payload = UploadActionRequest.model_validate(body)
    except ValidationError as e:
        return _error(400, _validation_message(e))

    if not payload.file_name:
        return _error(400, "File name is required")

    try:
        if payload.action == "getETag":
            if not payload.upload_id or payload.part_number is None:
                return _error(400, "uploadId and partNumber are required")
            etag = await issuer.fetch_etag(
                payload.bucket_name, payload.file_name, payload.upload_id, payload.part_number
            )
            return ETagResponse(etag=etag).model_dump(by_alias=True)

        if payload.action == "listParts":
            if not payload.upload_id:
                return _error(400, "uploadId is required")
            parts = await issuer.list_parts(payload.bucket_name, payload.file_name, payload.upload_id)
            return ListPartsResponse(
                parts=[
                    ListedPartModel(etag=part.etag, part_number=part.part_number, size=part.size)
                    for part in parts
                ]
            ).model_dump(by_alias=True)

        if not payload.upload_id:
            upload_id = await issuer.create(payload.bucket_name, payload.file_name, payload.file_type)
            return CreateUploadResponse(upload_id=upload_id).model_dump(by_alias=True)

        if payload.part_number is None:
            return _error(400, "partNumber is required")
        signed_url = await issuer.sign_part(
            payload.bucket_name, payload.file_name, payload.upload_id, payload.part_number
        )
        return SignPartResponse(signed_url=signed_url).model_dump(by_alias=True)

    except PartNotFoundError:
        return _error(404, "Part not found")
    except StorageConfigurationError as e:
        logger.error(f"Storage configuration error: {e}")
        return _error(500, "Upload failed")
    except StorageError as e:
        logger.error(f"Error in upload API: {e}", exc_info=True)
        return _error(500, "Upload failed")


@router.put("/upload")
async def complete_upload(request: Request, issuer: UploadIssuerDep):
    """Complete a multipart upload and queue the image for moderation."""
    body = await _read_json(request)
    if not body or not body.get("bucketName"):
        return _error(400, "Bucket name is required")

    try:
        payload = CompleteUploadRequest.model_validate(body)
    except ValidationError as e:
        return _error(400, _validation_message(e))

    try:
        completed = await issuer.complete(
            payload.bucket_name,
            payload.file_name,
            payload.upload_id,
            [UploadedPart(part_number=part.part_number, etag=part.etag) for part in payload.parts],
        )
    except InvalidPartListError as e:
        return _error(400, str(e))
    except StorageError as e:
        logger.error(f"Error completing multipart upload: {e}", exc_info=True)
        return _error(500, "Failed to complete upload")

    return CompleteUploadResponse(
        message="Upload completed successfully",
        result=completed.result,
        image_id=completed.image.id,
    ).model_dump(by_alias=True)


@router.delete("/upload")
async def abort_upload(request: Request, issuer: UploadIssuerDep):
    """Abort a multipart upload, releasing its uploaded parts."""
    body = await _read_json(request)
    if not body or not body.get("bucketName"):
        return _error(400, "Bucket name is required")

    try:
        payload = AbortUploadRequest.model_validate(body)
    except ValidationError as e:
        return _error(400, _validation_message(e))

    try:
        await issuer.abort(payload.bucket_name, payload.file_name, payload.upload_id)
    except StorageError as e:
        logger.error(f"Error aborting multipart upload: {e}", exc_info=True)
        return _error(500, "Failed to abort upload")

    return AbortUploadResponse(message="Upload aborted successfully").model_dump(by_alias=True)


@router.get("/moderate")
def list_for_moderation(store: ModerationStoreDep):
    """Return every image, whatever its status, for the moderation UI."""
    return {"success": True, "images": [image.to_dict() for image in store.list_all()]}


@router.post("/moderate")
async def moderate_image(request: Request, store: ModerationStoreDep):
    """Approve or reject an image."""
    body = await _read_json(request) or {}
    try:
        payload = ModerateRequest.model_validate(body)
    except ValidationError:
        return _failure(400, "Missing imageId or action")

    if not payload.image_id or not payload.action:
        return _failure(400, "Missing imageId or action")

    try:
        action = ModerationAction(payload.action)
    except ValueError:
        return _failure(400, 'Invalid action. Must be "approve" or "reject"')

    try:
        image = store.set_status(payload.image_id, action)
    except ImageNotFoundError:
        return _failure(404, "Image not found")

    logger.info(
        "Image moderated",
        extra={"image_id": image.id, "action": action.value, "status": image.status.value},
    )
    return {
        "success": True,
        "message": f"Image {image.status.value} successfully",
        "image": image.to_dict(),
    }


@router.get("/gallery")
def gallery(store: ModerationStoreDep):
    """Public gallery: approved images only, without moderation fields."""
    return {
        "success": True,
        "photos": [image.to_public_dict() for image in store.list_approved()],
    }


@router.post("/submit")
async def submit_guest_photo(request: Request, store: SubmissionStoreDep):
    """Save a guest's name, email and face photo."""
    body = await _read_json(request) or {}
    try:
        payload = GuestSubmissionRequest.model_validate(body)
    except ValidationError:
        return _error(400, "Name, email, and face photo are required")

    if not payload.name or not payload.email or not payload.face_photo:
        return _error(400, "Name, email, and face photo are required")

    if not re.match(EMAIL_PATTERN, payload.email):
        return _error(400, "Invalid email format")

    submission_id = uuid4().hex
    try:
        await asyncio.to_thread(
            store.save, submission_id, payload.name, payload.email, payload.face_photo
        )
    except SubmissionStoreError:
        return _error(500, "Failed to submit form")

    return {"success": True, "id": submission_id, "message": "Form submitted successfully"}

"""Multipart upload operations against S3-compatible storage.

The browser transfers part bytes straight to storage through presigned
URLs; this module issues those URLs and drives the surrounding
create / list / complete / abort calls. Completing an upload registers
the image with the moderation store as pending.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable
from uuid import uuid4

from minio.datatypes import Part

from fotofi.core.config import settings
from fotofi.storage.client_cache import StorageClientCache
from fotofi.storage.exceptions import (
    InvalidPartListError,
    PartNotFoundError,
    StorageOperationError,
)
from fotofi.storage.moderation_store import ImageRecord, ImageStatus, ModerationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedPart:
    """A part the backend has accepted."""

    part_number: int
    etag: str
    size: int | None = None


@dataclass
class CompletedUpload:
    """Outcome of finalizing a multipart upload."""

    result: dict[str, Any]
    image: ImageRecord


def _strip_quotes(etag: str) -> str:
    return etag.strip('"')


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_image_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid4().hex[:9]}"


def validate_part_list(parts: Iterable[UploadedPart]) -> list[UploadedPart]:
    """Sort parts by number and check they are exactly 1..N.

    Raises:
        InvalidPartListError: If the list is empty, has gaps or duplicates,
            or a part lacks an ETag
    """
    ordered = sorted(parts, key=lambda part: part.part_number)
    if not ordered:
        raise InvalidPartListError("At least one part is required")

    for expected, part in enumerate(ordered, start=1):
        if part.part_number != expected:
            raise InvalidPartListError(
                f"Parts must be numbered 1..{len(ordered)} without gaps; "
                f"expected part {expected}, got {part.part_number}"
            )
        if not part.etag:
            raise InvalidPartListError(f"Part {part.part_number} has no ETag")
    return ordered


class MultipartUploadIssuer:
    """Issues multipart upload sessions and per-part signed URLs."""

    def __init__(
        self,
        client_cache: StorageClientCache,
        moderation_store: ModerationStore,
        signed_url_expiry_seconds: int = settings.SIGNED_URL_EXPIRY_SECONDS,
        public_base_url: str = settings.PUBLIC_MEDIA_BASE_URL,
        image_id_factory: Callable[[], str] = _new_image_id,
    ):
        self._client_cache = client_cache
        self._moderation_store = moderation_store
        self._expiry = timedelta(seconds=signed_url_expiry_seconds)
        self._public_base_url = public_base_url.rstrip("/")
        self._image_id_factory = image_id_factory

    async def create(self, bucket_name: str, file_name: str, content_type: str | None) -> str:
        """Start a multipart upload.

        Returns:
            Upload id assigned by the backend

        Raises:
            StorageConfigurationError: If the bucket has no credentials
            StorageOperationError: If the backend call fails
        """
        client = self._client_cache.get_or_create(bucket_name)
        headers = {"Content-Type": content_type or "application/octet-stream"}
        try:
            upload_id = await asyncio.to_thread(
                client._create_multipart_upload, bucket_name, file_name, headers
            )
        except Exception as e:
            logger.error(
                f"Failed to create multipart upload: {e}",
                extra={"bucket": bucket_name, "file_name": file_name},
            )
            raise StorageOperationError("create", bucket_name, file_name, e) from e

        logger.info(
            "Multipart upload created",
            extra={"bucket": bucket_name, "file_name": file_name, "upload_id": upload_id},
        )
        return upload_id

    async def sign_part(
        self, bucket_name: str, file_name: str, upload_id: str, part_number: int
    ) -> str:
        """Presign a PUT for one part of an upload.

        Returns:
            URL valid for the configured expiry that accepts exactly this part
        """
        client = self._client_cache.get_or_create(bucket_name)
        try:
            signed_url = await asyncio.to_thread(
                client.get_presigned_url,
                "PUT",
                bucket_name,
                file_name,
                expires=self._expiry,
                extra_query_params={
                    "uploadId": upload_id,
                    "partNumber": str(part_number),
                },
            )
        except Exception as e:
            logger.error(
                f"Failed to sign part: {e}",
                extra={"bucket": bucket_name, "upload_id": upload_id, "part_number": part_number},
            )
            raise StorageOperationError("sign-part", bucket_name, file_name, e) from e

        logger.debug(
            "Signed part URL",
            extra={"bucket": bucket_name, "upload_id": upload_id, "part_number": part_number},
        )
        return signed_url

    async def fetch_etag(
        self, bucket_name: str, file_name: str, upload_id: str, part_number: int
    ) -> str:
        """Look up the ETag the backend assigned to an uploaded part.

        Raises:
            PartNotFoundError: If the backend holds no such part
            StorageOperationError: If the backend call fails
        """
        client = self._client_cache.get_or_create(bucket_name)
        try:
            listing = await asyncio.to_thread(
                client._list_parts,
                bucket_name,
                file_name,
                upload_id,
                max_parts=1,
                part_number_marker=str(part_number - 1),
            )
        except Exception as e:
            logger.error(
                f"Failed to list parts: {e}",
                extra={"bucket": bucket_name, "upload_id": upload_id, "part_number": part_number},
            )
            raise StorageOperationError("fetch-etag", bucket_name, file_name, e) from e

        parts = listing.parts or []
        if not parts or parts[0].part_number != part_number or not parts[0].etag:
            raise PartNotFoundError(upload_id, part_number)
        return _strip_quotes(parts[0].etag)

    async def list_parts(self, bucket_name: str, file_name: str, upload_id: str) -> list[UploadedPart]:
        """List every part the backend holds for an upload, in order."""
        client = self._client_cache.get_or_create(bucket_name)
        parts: list[UploadedPart] = []
        marker: str | None = None
        try:
            while True:
                listing = await asyncio.to_thread(
                    client._list_parts,
                    bucket_name,
                    file_name,
                    upload_id,
                    part_number_marker=marker,
                )
                for part in listing.parts or []:
                    parts.append(
                        UploadedPart(
                            part_number=part.part_number,
                            etag=_strip_quotes(part.etag),
                            size=part.size,
                        )
                    )
                if not listing.is_truncated:
                    break
                marker = str(listing.next_part_number_marker)
        except Exception as e:
            logger.error(
                f"Failed to list parts: {e}",
                extra={"bucket": bucket_name, "upload_id": upload_id},
            )
            raise StorageOperationError("list-parts", bucket_name, file_name, e) from e
        return parts

    async def complete(
        self,
        bucket_name: str,
        file_name: str,
        upload_id: str,
        parts: Iterable[UploadedPart],
    ) -> CompletedUpload:
        """Assemble the parts into one object and queue it for moderation.

        Parts may arrive in any order; they are submitted sorted by number.

        Raises:
            InvalidPartListError: If the parts are not exactly 1..N
            StorageOperationError: If the backend rejects the completion
        """
        ordered = validate_part_list(parts)
        client = self._client_cache.get_or_create(bucket_name)
        try:
            write_result = await asyncio.to_thread(
                client._complete_multipart_upload,
                bucket_name,
                file_name,
                upload_id,
                [Part(part.part_number, part.etag) for part in ordered],
            )
        except Exception as e:
            logger.error(
                f"Failed to complete multipart upload: {e}",
                extra={"bucket": bucket_name, "upload_id": upload_id, "parts": len(ordered)},
            )
            raise StorageOperationError("complete", bucket_name, file_name, e) from e

        image = ImageRecord(
            id=self._image_id_factory(),
            url=f"{self._public_base_url}/{file_name}",
            file_name=file_name,
            uploaded_at=_utc_timestamp(),
            status=ImageStatus.PENDING,
        )
        self._moderation_store.add(image)

        logger.info(
            "Multipart upload completed",
            extra={
                "bucket": bucket_name,
                "file_name": file_name,
                "upload_id": upload_id,
                "parts": len(ordered),
                "image_id": image.id,
            },
        )
        return CompletedUpload(
            result={
                "bucket": getattr(write_result, "bucket_name", bucket_name),
                "key": getattr(write_result, "object_name", file_name),
                "etag": getattr(write_result, "etag", None),
                "versionId": getattr(write_result, "version_id", None),
                "location": getattr(write_result, "location", None),
            },
            image=image,
        )

    async def abort(self, bucket_name: str, file_name: str, upload_id: str) -> None:
        """Cancel an upload and release its uploaded parts."""
        client = self._client_cache.get_or_create(bucket_name)
        try:
            await asyncio.to_thread(
                client._abort_multipart_upload, bucket_name, file_name, upload_id
            )
        except Exception as e:
            logger.error(
                f"Failed to abort multipart upload: {e}",
                extra={"bucket": bucket_name, "upload_id": upload_id},
            )
            raise StorageOperationError("abort", bucket_name, file_name, e) from e

        logger.info(
            "Multipart upload aborted",
            extra={"bucket": bucket_name, "file_name": file_name, "upload_id": upload_id},
        )

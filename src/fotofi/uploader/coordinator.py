"""Client-side orchestration of chunked multipart photo uploads.

Drives the sequence the upload page runs for each file: create the upload,
then for every part in order sign a URL, PUT the bytes straight to storage
and fetch the part's ETag, and finally complete the upload. Files in a
batch go one at a time; a failed file does not stop the ones after it.

Failures are not aborted automatically. A failed file's ``upload_id`` can
be passed back to ``upload_file`` to resume from the parts storage already
holds, or to ``abort`` to release them.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from fotofi.core.config import settings
from fotofi.storage.chunking import ChunkRange, plan_chunks

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/photos/upload"
_STREAM_BLOCK_SIZE = 256 * 1024


class UploadState(str, Enum):
    """Where a file's upload currently is."""

    PENDING = "pending"
    CREATING = "creating"
    REQUESTING_URL = "requesting-url"
    TRANSFERRING = "transferring"
    FETCHING_ETAG = "fetching-etag"
    COMPLETING = "completing"
    COMPLETED = "completed"
    ERROR = "error"


class UploadError(Exception):
    """Raised when one step of a file's upload fails."""

    def __init__(self, message: str, state: UploadState, cause: Exception | None = None):
        self.state = state
        self.cause = cause
        super().__init__(message)


class PartTransferError(UploadError):
    """Storage answered a part PUT with an error status."""

    def __init__(self, part_number: int, status_code: int):
        self.part_number = part_number
        self.status_code = status_code
        super().__init__(
            f"Storage rejected part {part_number} (HTTP {status_code})", UploadState.TRANSFERRING
        )


class MissingETagError(UploadError):
    """Storage accepted a part but did not expose its ETag."""

    def __init__(self, part_number: int):
        self.part_number = part_number
        super().__init__(f"ETag not received for part {part_number}", UploadState.FETCHING_ETAG)


@dataclass
class UploadSource:
    """One file to upload."""

    data: bytes
    name: str
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: Path, content_type: str = "application/octet-stream") -> "UploadSource":
        return cls(data=path.read_bytes(), name=path.name, content_type=content_type)


@dataclass
class UploadProgress:
    """Progress report passed to the ``on_progress`` callback."""

    index: int
    file_name: str
    state: UploadState
    fraction: float  # 0.0 .. 1.0 over the whole file


@dataclass
class FileUploadResult:
    source_name: str
    file_name: str
    state: UploadState = UploadState.PENDING
    upload_id: Optional[str] = None
    image_id: Optional[str] = None
    parts: list[dict] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == UploadState.COMPLETED


@dataclass
class BatchUploadResult:
    results: list[FileUploadResult]

    @property
    def failed(self) -> bool:
        return any(not result.succeeded for result in self.results)

    @property
    def error_message(self) -> Optional[str]:
        """Message of the last failure, as the upload form shows it."""
        errors = [result.error for result in self.results if result.error]
        return errors[-1] if errors else None


def make_object_name(original_name: str, now: Callable[[], float] = time.time) -> str:
    """Timestamped, sanitized object key for an uploaded file."""
    safe = re.sub(r"[^a-zA-Z0-9.-]", "_", original_name)
    return f"{int(now() * 1000)}-{safe}"


class UploadCoordinator:
    """Uploads files through the photo upload API, one part at a time."""

    def __init__(
        self,
        api_client: httpx.AsyncClient,
        transfer_client: httpx.AsyncClient | None = None,
        bucket_name: str = settings.DEFAULT_BUCKET_NAME,
        chunk_size: int = settings.chunk_size_bytes,
        max_part_attempts: int = 3,
        retry_wait: wait_base | None = None,
        on_progress: Callable[[UploadProgress], None] | None = None,
    ):
        """Initialize coordinator.

        Args:
            api_client: Client whose base_url points at the application
            transfer_client: Client for PUTs to signed storage URLs
                (default: api_client)
            bucket_name: Target bucket
            chunk_size: Part size in bytes
            max_part_attempts: Attempts per part before the file fails
            retry_wait: Wait strategy between attempts (default: exponential)
            on_progress: Called on every state change and transfer block
        """
        self._api = api_client
        self._transfer = transfer_client or api_client
        self.bucket_name = bucket_name
        self.chunk_size = chunk_size
        self.max_part_attempts = max_part_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self._on_progress = on_progress

    async def upload_batch(self, sources: list[UploadSource]) -> BatchUploadResult:
        """Upload files strictly in order, continuing past failures."""
        results = []
        for index, source in enumerate(sources):
            results.append(await self.upload_file(source, index=index))

        batch = BatchUploadResult(results=results)
        if batch.failed:
            logger.warning(
                "Batch upload finished with failures",
                extra={
                    "files": len(results),
                    "failed": sum(1 for result in results if not result.succeeded),
                },
            )
        else:
            logger.info("All files uploaded successfully", extra={"files": len(results)})
        return batch

    async def upload_file(
        self,
        source: UploadSource,
        index: int = 0,
        resume_upload_id: str | None = None,
        file_name: str | None = None,
    ) -> FileUploadResult:
        """Upload one file, or resume an earlier attempt.

        Args:
            source: File bytes and metadata
            index: Position in the batch, echoed in progress reports
            resume_upload_id: Upload id of an earlier, unfinished attempt
            file_name: Object key of that attempt (required when resuming)

        Returns:
            Result in state COMPLETED, or ERROR with the failure message
        """
        if resume_upload_id and not file_name:
            raise ValueError("file_name is required to resume an upload")

        result = FileUploadResult(
            source_name=source.name,
            file_name=file_name or make_object_name(source.name),
            upload_id=resume_upload_id,
        )

        try:
            await self._run(source, index, result)
        except UploadError as e:
            self._fail(index, result, source, str(e), e.state)
        except httpx.TransportError as e:
            # API unreachable outside a part's retry window (create or complete)
            self._fail(index, result, source, f"Network error: {e}", result.state)
        return result

    def _fail(
        self,
        index: int,
        result: FileUploadResult,
        source: UploadSource,
        message: str,
        failed_state: UploadState,
    ) -> None:
        result.error = message
        self._report(index, result, UploadState.ERROR, self._fraction(result, source))
        logger.error(
            f"Error uploading file {index}: {message}",
            extra={"file_name": result.file_name, "upload_id": result.upload_id, "failed_state": failed_state.value},
        )

    async def abort(self, file_name: str, upload_id: str) -> None:
        """Release an unfinished upload's parts."""
        await self._call_api(
            "DELETE",
            {"fileName": file_name, "uploadId": upload_id, "bucketName": self.bucket_name},
            UploadState.ERROR,
            "Failed to abort upload",
        )

    async def _run(self, source: UploadSource, index: int, result: FileUploadResult) -> None:
        try:
            plan = plan_chunks(len(source.data), self.chunk_size)
        except ValueError as e:
            raise UploadError(str(e), UploadState.PENDING, e) from e

        etags: dict[int, str] = {}
        if result.upload_id:
            etags = await self._existing_parts(result, plan)
        else:
            self._report(index, result, UploadState.CREATING, 0.0)
            body = await self._call_api(
                "POST",
                {"fileName": result.file_name, "fileType": source.content_type, "bucketName": self.bucket_name},
                UploadState.CREATING,
                "Failed to create upload session",
            )
            result.upload_id = body.get("uploadId")
            if not result.upload_id:
                raise UploadError("Failed to create upload session", UploadState.CREATING)

        for chunk in plan:
            if chunk.part_number in etags:
                continue
            etags[chunk.part_number] = await self._upload_part_with_retry(source, index, result, chunk, len(plan))
            result.parts = self._ordered_parts(etags)

        result.parts = self._ordered_parts(etags)
        self._report(index, result, UploadState.COMPLETING, 1.0)
        body = await self._call_api(
            "PUT",
            {
                "fileName": result.file_name,
                "uploadId": result.upload_id,
                "parts": result.parts,
                "bucketName": self.bucket_name,
            },
            UploadState.COMPLETING,
            "Failed to complete upload",
        )
        result.image_id = body.get("imageId")
        result.state = UploadState.COMPLETED
        self._report(index, result, UploadState.COMPLETED, 1.0)
        logger.info(
            "File uploaded",
            extra={"file_name": result.file_name, "upload_id": result.upload_id, "parts": len(plan)},
        )

    async def _existing_parts(self, result: FileUploadResult, plan: list[ChunkRange]) -> dict[int, str]:
        """Parts of a resumed upload that storage already holds in full."""
        body = await self._call_api(
            "POST",
            {
                "fileName": result.file_name,
                "uploadId": result.upload_id,
                "bucketName": self.bucket_name,
                "action": "listParts",
            },
            UploadState.CREATING,
            "Failed to list uploaded parts",
        )
        expected = {chunk.part_number: chunk.length for chunk in plan}
        kept = {}
        for part in body.get("parts", []):
            number = part.get("PartNumber")
            size = part.get("Size")
            if number in expected and part.get("ETag") and (size is None or size == expected[number]):
                kept[number] = part["ETag"].strip('"')
        logger.info(
            "Resuming upload",
            extra={"upload_id": result.upload_id, "parts_done": len(kept), "parts_total": len(plan)},
        )
        return kept

    async def _upload_part_with_retry(
        self,
        source: UploadSource,
        index: int,
        result: FileUploadResult,
        chunk: ChunkRange,
        total_parts: int,
    ) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_part_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type((httpx.TransportError, PartTransferError)),
            reraise=True,
        )
        try:
            return await retrying(self._upload_part, source, index, result, chunk, total_parts)
        except httpx.TransportError as e:
            raise UploadError(
                f"Failed to upload part {chunk.part_number}: {e}", UploadState.TRANSFERRING, e
            ) from e

    async def _upload_part(
        self,
        source: UploadSource,
        index: int,
        result: FileUploadResult,
        chunk: ChunkRange,
        total_parts: int,
    ) -> str:
        completed_parts = chunk.part_number - 1

        self._report(index, result, UploadState.REQUESTING_URL, completed_parts / total_parts)
        body = await self._call_api(
            "POST",
            {
                "fileName": result.file_name,
                "partNumber": chunk.part_number,
                "uploadId": result.upload_id,
                "bucketName": self.bucket_name,
            },
            UploadState.REQUESTING_URL,
            f"Failed to sign part {chunk.part_number}",
        )
        signed_url = body.get("signedUrl")
        if not signed_url:
            raise UploadError(f"No signed URL for part {chunk.part_number}", UploadState.REQUESTING_URL)

        data = source.data[chunk.start:chunk.end]

        async def stream() -> AsyncIterator[bytes]:
            sent = 0
            for offset in range(0, len(data), _STREAM_BLOCK_SIZE):
                block = data[offset:offset + _STREAM_BLOCK_SIZE]
                yield block
                sent += len(block)
                self._report(
                    index,
                    result,
                    UploadState.TRANSFERRING,
                    (completed_parts + sent / len(data)) / total_parts,
                )

        self._report(index, result, UploadState.TRANSFERRING, completed_parts / total_parts)
        response = await self._transfer.put(
            signed_url,
            content=stream(),
            headers={"Content-Type": "application/octet-stream", "Content-Length": str(len(data))},
        )
        if response.is_error:
            raise PartTransferError(chunk.part_number, response.status_code)

        self._report(index, result, UploadState.FETCHING_ETAG, (completed_parts + 1) / total_parts)
        body = await self._call_api(
            "POST",
            {
                "fileName": result.file_name,
                "uploadId": result.upload_id,
                "partNumber": chunk.part_number,
                "bucketName": self.bucket_name,
                "action": "getETag",
            },
            UploadState.FETCHING_ETAG,
            f"Failed to fetch ETag for part {chunk.part_number}",
        )
        etag = body.get("ETag")
        if not etag:
            raise MissingETagError(chunk.part_number)
        return etag.strip('"')

    async def _call_api(self, method: str, payload: dict, state: UploadState, failure: str) -> dict:
        """Send a JSON request to the upload endpoint.

        Transport errors propagate so the part-level retry can see them;
        error responses and bodies that are not a JSON object become
        UploadError.
        """
        response = await self._api.request(method, UPLOAD_PATH, json=payload)
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = None

        if response.is_error:
            detail = body.get("error") if body else None
            message = f"{failure}: {detail}" if detail else failure
            raise UploadError(message, state)
        if body is None:
            raise UploadError(f"{failure}: unexpected response body", state)
        return body

    @staticmethod
    def _ordered_parts(etags: dict[int, str]) -> list[dict]:
        return [{"PartNumber": number, "ETag": etags[number]} for number in sorted(etags)]

    def _fraction(self, result: FileUploadResult, source: UploadSource) -> float:
        if not source.data:
            return 0.0
        total = -(-len(source.data) // self.chunk_size)
        return min(len(result.parts) / total, 1.0)

    def _report(self, index: int, result: FileUploadResult, state: UploadState, fraction: float) -> None:
        result.state = state
        if self._on_progress is not None:
            self._on_progress(
                UploadProgress(index=index, file_name=result.file_name, state=state, fraction=fraction)
            )

"""Client for uploading photos through the chunked multipart upload API.

Runs the same create / sign / transfer / complete sequence as the browser
upload page, so files can be uploaded from scripts and tests.
"""

from fotofi.uploader.coordinator import (
    BatchUploadResult,
    FileUploadResult,
    MissingETagError,
    PartTransferError,
    UploadCoordinator,
    UploadError,
    UploadProgress,
    UploadSource,
    UploadState,
    make_object_name,
)

__all__ = [
    "BatchUploadResult",
    "FileUploadResult",
    "MissingETagError",
    "PartTransferError",
    "UploadCoordinator",
    "UploadError",
    "UploadProgress",
    "UploadSource",
    "UploadState",
    "make_object_name",
]

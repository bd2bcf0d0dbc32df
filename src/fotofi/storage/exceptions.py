"""Custom exceptions for object storage operations."""


class StorageError(Exception):
    """Base exception for object storage operations."""
    pass


class StorageConfigurationError(StorageError):
    """Raised when a bucket has no usable credentials."""

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name
        super().__init__(f"Missing credentials for bucket: {bucket_name}")


class StorageOperationError(StorageError):
    """Raised when a call to the storage backend fails."""

    def __init__(self, operation: str, bucket_name: str, object_name: str, cause: Exception | None = None):
        self.operation = operation
        self.bucket_name = bucket_name
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Storage operation '{operation}' failed for {bucket_name}/{object_name}")


class PartNotFoundError(StorageError):
    """Raised when the backend holds no part with the requested number."""

    def __init__(self, upload_id: str, part_number: int):
        self.upload_id = upload_id
        self.part_number = part_number
        super().__init__(f"Part {part_number} not found for upload {upload_id}")


class InvalidPartListError(StorageError):
    """Raised when a completion request does not name parts 1..N exactly once."""
    pass

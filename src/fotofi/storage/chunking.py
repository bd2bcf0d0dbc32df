"""Split a file into the fixed-size parts of a multipart upload."""

import math
from dataclasses import dataclass

CHUNK_SIZE = 10 * 1024 * 1024  # 10 MiB


class InvalidChunkPlanError(ValueError):
    """Raised when a file or chunk size cannot be planned."""
    pass


@dataclass(frozen=True)
class ChunkRange:
    """Byte range of one part. ``end`` is exclusive."""

    part_number: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def plan_chunks(file_size: int, chunk_size: int = CHUNK_SIZE) -> list[ChunkRange]:
    """Plan the parts of a multipart upload.

    Args:
        file_size: Size of the file in bytes
        chunk_size: Size of every part except possibly the last

    Returns:
        ceil(file_size / chunk_size) contiguous ranges, numbered from 1

    Raises:
        InvalidChunkPlanError: If either size is zero or negative
    """
    if file_size <= 0:
        raise InvalidChunkPlanError(f"File size must be positive, got {file_size}")
    if chunk_size <= 0:
        raise InvalidChunkPlanError(f"Chunk size must be positive, got {chunk_size}")

    count = math.ceil(file_size / chunk_size)
    return [
        ChunkRange(
            part_number=index + 1,
            start=index * chunk_size,
            end=min((index + 1) * chunk_size, file_size),
        )
        for index in range(count)
    ]

"""Image moderation tracking store."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional


class ImageStatus(str, Enum):
    """Moderation status enumeration."""

    PENDING = "pending"  # Uploaded, awaiting review
    APPROVED = "approved"  # Visible in the public gallery
    REJECTED = "rejected"


class ModerationAction(str, Enum):
    """Actions a moderator can take on an image."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> ImageStatus:
        if self is ModerationAction.APPROVE:
            return ImageStatus.APPROVED
        return ImageStatus.REJECTED


class ImageNotFoundError(Exception):
    """Raised when no image has the requested id."""

    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"Image {image_id} not found")


@dataclass
class ImageRecord:
    """Uploaded image metadata."""

    id: str
    url: str
    file_name: str
    uploaded_at: str  # ISO-8601, UTC
    status: ImageStatus = ImageStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "fileName": self.file_name,
            "uploadedAt": self.uploaded_at,
            "status": self.status.value,
        }

    def to_public_dict(self) -> dict:
        """Fields safe to show in the public gallery."""
        return {
            "id": self.id,
            "url": self.url,
            "fileName": self.file_name,
            "uploadedAt": self.uploaded_at,
        }


class ModerationStore(ABC):
    """Abstract base class for moderation stores."""

    @abstractmethod
    def add(self, record: ImageRecord) -> None:
        """Register a newly uploaded image."""
        pass

    @abstractmethod
    def get(self, image_id: str) -> Optional[ImageRecord]:
        """Retrieve an image by id, or None."""
        pass

    @abstractmethod
    def list_all(self) -> list[ImageRecord]:
        """List every image in upload order, whatever its status."""
        pass

    @abstractmethod
    def list_approved(self) -> list[ImageRecord]:
        """List approved images in upload order."""
        pass

    @abstractmethod
    def set_status(self, image_id: str, action: ModerationAction) -> ImageRecord:
        """Apply a moderation action.

        Args:
            image_id: Image identifier
            action: approve or reject

        Returns:
            The updated record

        Raises:
            ImageNotFoundError: If image_id is unknown
        """
        pass


class InMemoryModerationStore(ModerationStore):
    """In-memory store for image records.

    Records live for the lifetime of the process. Concurrent updates to
    the same image are last-write-wins.
    """

    def __init__(self):
        self._images: Dict[str, ImageRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: ImageRecord) -> None:
        with self._lock:
            self._images[record.id] = record

    def get(self, image_id: str) -> Optional[ImageRecord]:
        with self._lock:
            record = self._images.get(image_id)
            return replace(record) if record else None

    def list_all(self) -> list[ImageRecord]:
        with self._lock:
            return [replace(record) for record in self._images.values()]

    def list_approved(self) -> list[ImageRecord]:
        with self._lock:
            return [
                replace(record)
                for record in self._images.values()
                if record.status == ImageStatus.APPROVED
            ]

    def set_status(self, image_id: str, action: ModerationAction) -> ImageRecord:
        with self._lock:
            record = self._images.get(image_id)
            if record is None:
                raise ImageNotFoundError(image_id)
            record.status = action.resulting_status
            return replace(record)

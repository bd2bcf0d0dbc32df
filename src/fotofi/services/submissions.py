"""Guest photo submission store."""

import json
import logging
import time
from abc import ABC, abstractmethod

import redis

logger = logging.getLogger(__name__)


class SubmissionStoreError(Exception):
    """Raised when a submission cannot be saved."""

    def __init__(self, submission_id: str, cause: Exception | None = None):
        self.submission_id = submission_id
        self.cause = cause
        super().__init__(f"Failed to save submission '{submission_id}'")


class SubmissionStore(ABC):
    """Abstract base class for guest submission stores."""

    @abstractmethod
    def save(self, submission_id: str, name: str, email: str, face_photo: str) -> None:
        """
        Persists a guest submission.

        Raises:
            SubmissionStoreError: If the store rejects the write.
        """
        pass


class RedisSubmissionStore(SubmissionStore):
    """Stores each submission as a JSON string keyed by its id."""

    def __init__(self, client: redis.Redis):
        self._client = client

    def save(self, submission_id: str, name: str, email: str, face_photo: str) -> None:
        data = {
            "name": name,
            "email": email,
            "facePhoto": face_photo,
            "timestamp": int(time.time() * 1000),
        }
        try:
            self._client.set(submission_id, json.dumps(data))
            logger.info("Submission saved", extra={"submission_id": submission_id})
        except redis.RedisError as e:
            logger.exception("Redis set failed", extra={"submission_id": submission_id})
            raise SubmissionStoreError(submission_id, cause=e) from e

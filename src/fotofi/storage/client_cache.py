"""Per-bucket cache of storage clients."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, TypeVar

from minio import Minio

from fotofi.core.config import resolve_bucket_credentials, settings
from fotofi.storage.exceptions import StorageConfigurationError

logger = logging.getLogger(__name__)

ClientT = TypeVar("ClientT")


def create_storage_client(bucket_name: str) -> Minio:
    """Build a MinIO client for a bucket using its own credentials.

    Raises:
        StorageConfigurationError: If the bucket's key pair is not set
    """
    credentials = resolve_bucket_credentials(bucket_name)
    if credentials is None:
        raise StorageConfigurationError(bucket_name)

    access_key, secret_key = credentials
    return Minio(
        endpoint=settings.STORAGE_ENDPOINT,
        access_key=access_key,
        secret_key=secret_key,
        secure=settings.STORAGE_SECURE,
        region=settings.STORAGE_REGION,
    )


@dataclass
class CachedClient(Generic[ClientT]):
    client: ClientT
    last_used: float


class StorageClientCache(Generic[ClientT]):
    """Keeps at most one client per bucket, dropping clients left idle.

    Stale entries are swept on every access rather than by a timer. The
    read-evict-write sequence runs under a lock because handlers may run
    on a thread pool.
    """

    def __init__(
        self,
        factory: Callable[[str], ClientT],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedClient[ClientT]] = {}
        self._lock = threading.Lock()

    def get_or_create(self, bucket_name: str) -> ClientT:
        """Return the bucket's client, creating it on first use.

        Raises:
            StorageConfigurationError: If a new client cannot be configured
        """
        with self._lock:
            now = self._clock()
            self._evict_stale(now)

            entry = self._entries.get(bucket_name)
            if entry is not None:
                entry.last_used = now
                return entry.client

            client = self._factory(bucket_name)
            self._entries[bucket_name] = CachedClient(client=client, last_used=now)
            logger.info("Created storage client", extra={"bucket": bucket_name})
            return client

    def evict_stale(self) -> int:
        """Drop idle clients now. Returns the number evicted."""
        with self._lock:
            return self._evict_stale(self._clock())

    def _evict_stale(self, now: float) -> int:
        stale = [
            name
            for name, entry in self._entries.items()
            if now - entry.last_used > self._ttl_seconds
        ]
        for name in stale:
            del self._entries[name]
        if stale:
            logger.debug("Evicted idle storage clients", extra={"buckets": stale})
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, bucket_name: str) -> bool:
        with self._lock:
            return bucket_name in self._entries

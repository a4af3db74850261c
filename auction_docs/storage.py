"""
Blob storage sinks.

The ingestion code only writes to storage: raw documents under
``documents/`` and extracted photos under ``images/``.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Abstract write-only blob sink."""

    @abstractmethod
    def put(self, data: bytes, key: str, content_type: str) -> str:
        """
        Store bytes under a key.

        Args:
            data: Object content
            key: Storage key including its folder prefix
            content_type: MIME type of the object

        Returns:
            Reference to the stored object
        """
        pass

    @abstractmethod
    def delete(self, stored_ref: str) -> None:
        """Remove a previously stored object."""
        pass


class LocalBlobStore(BlobStore):
    """Blob sink backed by a local directory (local storage mode)."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    def put(self, data: bytes, key: str, content_type: str) -> str:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"Stored {key} ({content_type}, {len(data)} bytes)")
        return key

    def delete(self, stored_ref: str) -> None:
        self._path_for(stored_ref).unlink(missing_ok=True)


class MemoryBlobStore(BlobStore):
    """In-process blob sink, mostly useful for tests and dry runs."""

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, key: str, content_type: str) -> str:
        with self._lock:
            self.objects[key] = (data, content_type)
        return key

    def delete(self, stored_ref: str) -> None:
        with self._lock:
            self.objects.pop(stored_ref, None)

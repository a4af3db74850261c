"""
Processing run context.

A run owns the resources of one listing-processing pass: its identifier,
the blob sink, and a scoped temporary directory holding copies of the
fetched documents. Everything is released when the run closes.
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from .config import IngestConfig
from .storage import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)


class ProcessingRun:
    """
    Scoped resources for one listing-processing run.

    Usage:
        with ProcessingRun(config) as run:
            result = pipeline.fetch_all(links, run, referer_url)
    """

    def __init__(
        self,
        config: Optional[IngestConfig] = None,
        blob_store: Optional[BlobStore] = None,
        run_id: Optional[str] = None,
    ):
        self.config = config or IngestConfig()
        self.blob_store = blob_store or LocalBlobStore(self.config.storage_dir)
        self.run_id = run_id or uuid.uuid4().hex
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None

    def __enter__(self) -> "ProcessingRun":
        self._temp_dir = tempfile.TemporaryDirectory(prefix=f"auction-docs-{self.run_id}-")
        logger.debug(f"Run {self.run_id} started in {self._temp_dir.name}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """True once the run has released its temporary files (or was never opened)."""
        return self._temp_dir is None

    @property
    def temp_dir(self) -> Path:
        if self._temp_dir is None:
            raise RuntimeError("ProcessingRun is not open; use it as a context manager")
        return Path(self._temp_dir.name)

    def write_temp(self, data: bytes, name: str) -> Path:
        """Write a scoped temporary copy that lives until the run closes."""
        path = self.temp_dir / name
        path.write_bytes(data)
        return path

    def close(self) -> None:
        """Release the run's temporary files."""
        if self._temp_dir is not None:
            self._temp_dir.cleanup()
            logger.debug(f"Run {self.run_id} released temporary files")
            self._temp_dir = None

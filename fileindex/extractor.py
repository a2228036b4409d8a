"""
Extractor - OS metadata for a single file.

Reads size and access/modification/creation times with one lstat call.
A failed stat is not fatal: the record is still written, just without
size and timestamps.
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional

from .config import get_config, IndexerConfig
from .errors import handle_error
from .models import FileEntry, FileMetadata


logger = logging.getLogger(__name__)


def to_utc(timestamp: Optional[float]) -> Optional[datetime]:
    """Convert a POSIX timestamp to an aware UTC datetime."""
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        # Out of range for the platform's time functions
        return None


def metadata_from_stat(st: os.stat_result) -> FileMetadata:
    """
    Build FileMetadata from a stat result.

    Birth time is only reported by some platforms (macOS, BSD, recent
    Windows builds); elsewhere created stays None.
    """
    return FileMetadata(
        file_size=st.st_size,
        last_access=to_utc(st.st_atime),
        last_write=to_utc(st.st_mtime),
        created=to_utc(getattr(st, "st_birthtime", None)),
    )


class MetadataExtractor:
    """Stats files without following symlinks."""

    def __init__(self, config: IndexerConfig | None = None):
        self.config = config or get_config()
        self._executor: ThreadPoolExecutor | None = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="extractor"
            )
        return self._executor

    async def extract(self, entry: FileEntry) -> FileMetadata:
        """
        Get metadata for one entry.

        Returns:
            FileMetadata; all fields None if the stat failed
        """
        loop = asyncio.get_running_loop()
        try:
            st = await loop.run_in_executor(
                self._get_executor(), self._stat_sync, entry
            )
        except OSError as e:
            handle_error(e, entry.path, "metadata")
            return FileMetadata.unavailable()

        return metadata_from_stat(st)

    def _stat_sync(self, entry: FileEntry) -> os.stat_result:
        return os.stat(entry.path, follow_symlinks=False)

    def close(self):
        """Shutdown the thread pool."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None

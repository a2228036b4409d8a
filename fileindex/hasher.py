"""
Hasher - Content fingerprinting.

Two strategies, picked once per deployment:
    - SHA-256 (hashlib): collision resistant, for integrity/dedup audits
    - xxHash64 (xxhash): ~5x faster, for cheap change detection

Fingerprints from different strategies are never comparable, so the
index store records which one built it.
"""

import asyncio
import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import xxhash

from .config import get_config, IndexerConfig
from .errors import handle_error
from .models import FingerprintAlgorithm


logger = logging.getLogger(__name__)


def new_digest(algorithm: FingerprintAlgorithm):
    """Return a fresh incremental hasher for the algorithm."""
    if algorithm is FingerprintAlgorithm.XXH64:
        return xxhash.xxh64()
    return hashlib.sha256()


def fingerprint_bytes(data: bytes, algorithm: FingerprintAlgorithm) -> str:
    """Fingerprint a complete byte string (hex encoded)."""
    digest = new_digest(algorithm)
    digest.update(data)
    return digest.hexdigest()


class Hasher:
    """
    File content hasher.

    Reads run in a single-worker thread pool: each read is awaited to
    completion before the pipeline moves on.
    """

    def __init__(self, config: IndexerConfig | None = None):
        self.config = config or get_config()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def algorithm(self) -> FingerprintAlgorithm:
        return self.config.fingerprint

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="hasher"
            )
        return self._executor

    def fingerprint_bytes(self, data: bytes) -> str:
        return fingerprint_bytes(data, self.algorithm)

    async def hash_file(self, path: Path) -> Optional[str]:
        """
        Fingerprint a file's content.

        Returns:
            Hex digest, or None if the file could not be read
            (permission denied, deleted mid-scan, I/O error)
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._get_executor(), self._hash_file_sync, path
            )
        except OSError as e:
            handle_error(e, path, "hash_file")
            return None

    def _hash_file_sync(self, path: Path) -> str:
        """
        Stream the file through the digest (runs in thread pool).

        Chunked reads give the same digest as hashing the whole
        content at once, without holding large files in memory.
        """
        digest = new_digest(self.algorithm)
        chunk_size = self.config.hash_chunk_size
        with open(path, "rb") as f:
            while chunk := f.read(chunk_size):
                digest.update(chunk)
        return digest.hexdigest()

    def close(self):
        """Shutdown the thread pool."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None


async def hash_file(
    path: Path,
    config: IndexerConfig | None = None,
) -> Optional[str]:
    """
    Convenience function to fingerprint one file.

    Usage:
        checksum = await hash_file(Path("report.pdf"))
    """
    hasher = Hasher(config)
    try:
        return await hasher.hash_file(path)
    finally:
        hasher.close()

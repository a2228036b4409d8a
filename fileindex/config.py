"""
Indexing Configuration - Centralized settings for the file indexer.

Uses environment variables with sensible defaults. The scan root is
resolved to an absolute path for reliability.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import FingerprintAlgorithm


DEFAULT_DATABASE = "sqlite:///" + str(Path.home() / ".fileindex" / "files.db")


@dataclass
class IndexerConfig:
    """
    Configuration for the indexing pipeline.

    The database defaults to ~/.fileindex/files.db. The fingerprint
    algorithm is a per-deployment choice: fingerprints produced by
    different algorithms are never comparable.
    """

    # --- Paths ---
    root: Path = field(default_factory=Path.cwd)
    database: str = DEFAULT_DATABASE

    # --- Fingerprinting ---
    fingerprint: FingerprintAlgorithm = FingerprintAlgorithm.SHA256
    hash_chunk_size: int = 64 * 1024   # 64KB reads

    # --- Reporting ---
    progress_interval: int = 1000      # Log progress every N files

    def __post_init__(self):
        """Resolve the root and coerce string settings."""
        self.root = Path(self.root).expanduser().resolve()
        if not isinstance(self.fingerprint, FingerprintAlgorithm):
            self.fingerprint = FingerprintAlgorithm.parse(self.fingerprint)
        if self.hash_chunk_size <= 0:
            raise ValueError("hash_chunk_size must be positive")

    @classmethod
    def from_env(cls) -> "IndexerConfig":
        """
        Create config from environment variables.

        Supported env vars:
            FILEINDEX_ROOT: Directory to scan
            FILEINDEX_DATABASE: Database connection string
            FILEINDEX_FINGERPRINT: sha256 or xxh64
            FILEINDEX_HASH_CHUNK_SIZE: Read size for hashing
            FILEINDEX_PROGRESS_INTERVAL: Files between progress lines
        """
        config = cls()

        if root := os.environ.get("FILEINDEX_ROOT"):
            config.root = Path(root)

        if database := os.environ.get("FILEINDEX_DATABASE"):
            config.database = database

        if fingerprint := os.environ.get("FILEINDEX_FINGERPRINT"):
            config.fingerprint = FingerprintAlgorithm.parse(fingerprint)

        if chunk := os.environ.get("FILEINDEX_HASH_CHUNK_SIZE"):
            config.hash_chunk_size = int(chunk)

        if interval := os.environ.get("FILEINDEX_PROGRESS_INTERVAL"):
            config.progress_interval = int(interval)

        config.__post_init__()
        return config


# Singleton default config
_default_config: IndexerConfig | None = None


def get_config() -> IndexerConfig:
    """Get the default configuration (singleton)."""
    global _default_config
    if _default_config is None:
        _default_config = IndexerConfig.from_env()
    return _default_config


def set_config(config: IndexerConfig | None) -> None:
    """Override the default configuration (for testing)."""
    global _default_config
    _default_config = config

"""
Data Models - Type definitions for the indexing pipeline.

These dataclasses represent the data flowing through the pipeline stages,
ensuring type safety and clear interfaces between modules. Anything the
filesystem could not tell us is None, never a sentinel value.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


def lossy_text(path) -> str:
    """
    Text form of a path that is always valid UTF-8.

    Undecodable bytes in a file name (legal on POSIX) become U+FFFD
    instead of surrogate escapes the database cannot store.
    """
    return os.fsencode(path).decode("utf-8", "replace")


class FingerprintAlgorithm(Enum):
    """Content fingerprint strategy (one per deployment)."""
    SHA256 = "sha256"   # Cryptographic, 256-bit, 64 hex chars
    XXH64 = "xxh64"     # Non-cryptographic, 64-bit, 16 hex chars

    @classmethod
    def parse(cls, value: str) -> "FingerprintAlgorithm":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(a.value for a in cls)
            raise ValueError(f"Unknown fingerprint algorithm {value!r} (expected one of: {choices})")


class PipelineState(Enum):
    """Lifecycle of a single pipeline run."""
    IDLE = "idle"
    SCHEMA_READY = "schema_ready"
    SCANNING = "scanning"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FileEntry:
    """
    A regular file found by the walker.

    This is the lightest-weight representation: just where the file is.
    Metadata and content are read later, independently.
    """
    path: Path
    name: str

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> "FileEntry":
        return cls(path=Path(entry.path), name=entry.name)

    @classmethod
    def from_path(cls, path: Path) -> "FileEntry":
        return cls(path=path, name=path.name)


@dataclass
class FileMetadata:
    """
    OS-reported metadata for one file.

    file_size is set whenever the stat call succeeded; each timestamp
    may be missing on its own if the platform does not report it.
    """
    file_size: Optional[int] = None
    last_access: Optional[datetime] = None
    last_write: Optional[datetime] = None
    created: Optional[datetime] = None

    @classmethod
    def unavailable(cls) -> "FileMetadata":
        """Metadata for a file that could not be stat'ed at all."""
        return cls()

    @property
    def available(self) -> bool:
        return self.file_size is not None


@dataclass
class FileRecord:
    """
    A row in the files table.

    full_path is the identity key; id is assigned by the store and
    carries no meaning outside it.
    """
    file_name: str
    full_path: str
    checksum: Optional[str] = None
    last_access: Optional[datetime] = None
    last_write: Optional[datetime] = None
    created: Optional[datetime] = None
    file_size: Optional[int] = None
    id: Optional[int] = None          # DB primary key (None before insert)

    @classmethod
    def build(
        cls,
        entry: FileEntry,
        metadata: FileMetadata,
        checksum: Optional[str],
    ) -> "FileRecord":
        """Assemble a record from the independent extraction results."""
        return cls(
            file_name=lossy_text(entry.name),
            full_path=lossy_text(entry.path),
            checksum=checksum,
            last_access=metadata.last_access,
            last_write=metadata.last_write,
            created=metadata.created,
            file_size=metadata.file_size,
        )


@dataclass
class ScanStats:
    """Statistics from an indexing run."""
    files_processed: int = 0      # Upserts attempted
    metadata_failures: int = 0
    checksum_failures: int = 0
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        return (
            f"Indexed {self.files_processed} files "
            f"({self.metadata_failures} without metadata, "
            f"{self.checksum_failures} without checksum) "
            f"in {self.duration_seconds:.1f}s"
        )

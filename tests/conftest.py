"""
Test Configuration - Shared fixtures for indexing tests.

Uses pytest fixtures to create isolated test environments.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from fileindex.config import IndexerConfig, set_config


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="fileindex_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """The directory tree under scan (kept apart from the database file)."""
    data = temp_dir / "data"
    data.mkdir()
    return data


@pytest.fixture
def test_config(temp_dir: Path, data_dir: Path) -> Generator[IndexerConfig, None, None]:
    """Create an isolated test configuration."""
    config = IndexerConfig(
        root=data_dir,
        database=f"sqlite:///{temp_dir / 'index.db'}",
        hash_chunk_size=4,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def data_tree(data_dir: Path) -> dict[str, Path]:
    """
    The reference tree:

        data/a.txt        "hi"
        data/sub/b.txt    "bye"
    """
    a = data_dir / "a.txt"
    a.write_bytes(b"hi")

    sub = data_dir / "sub"
    sub.mkdir()
    b = sub / "b.txt"
    b.write_bytes(b"bye")

    return {"a": a, "b": b, "sub": sub}

"""
Walker - Lazy depth-first file system traversal.

Yields one FileEntry per regular file under a root. Directories,
symlinks and special files (FIFOs, sockets, devices) are never yielded.
Anything that cannot be listed or typed is dropped without stopping
the walk.
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import AsyncGenerator, List, Tuple

from .config import get_config, IndexerConfig
from .errors import handle_error
from .models import FileEntry


logger = logging.getLogger(__name__)


class Walker:
    """
    Depth-first directory walker.

    A directory's files are yielded before any of its subdirectories
    is entered. Entries are sorted by name, so an unchanged tree is
    walked in the same order every time.
    """

    def __init__(self, config: IndexerConfig | None = None):
        self.config = config or get_config()
        self._executor: ThreadPoolExecutor | None = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="walker"
            )
        return self._executor

    async def walk(self, root: Path | None = None) -> AsyncGenerator[FileEntry, None]:
        """
        Iterate over regular files under root (default: config.root).

        The generator is single-use: consume it once per run.
        """
        root = Path(root) if root is not None else self.config.root

        try:
            is_file, is_dir = await self._run(self._classify_root, root)
        except OSError as e:
            handle_error(e, root, "walk", log_level=logging.DEBUG)
            return

        if is_file:
            yield FileEntry.from_path(root)
            return

        if not is_dir:
            logger.warning(f"Root directory not found: {root}")
            return

        stack = [root]
        while stack:
            directory = stack.pop()
            try:
                files, subdirs = await self._run(self._read_directory, directory)
            except OSError as e:
                handle_error(e, directory, "walk", log_level=logging.DEBUG)
                continue

            for entry in files:
                yield entry

            # Reversed so the first subdirectory is popped first
            stack.extend(reversed(subdirs))

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._get_executor(), func, *args)

    def _classify_root(self, root: Path) -> Tuple[bool, bool]:
        # A symlinked root is followed; links below it are not
        return root.is_file(), root.is_dir()

    def _read_directory(self, directory: Path) -> Tuple[List[FileEntry], List[Path]]:
        """List one directory (runs in thread pool)."""
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)

        files: List[FileEntry] = []
        subdirs: List[Path] = []

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    files.append(FileEntry.from_dir_entry(entry))
            except OSError as e:
                handle_error(e, Path(entry.path), "walk_entry", log_level=logging.DEBUG)
                continue

        return files, subdirs

    def close(self):
        """Shutdown the thread pool."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None


async def walk_files(
    root: Path,
    config: IndexerConfig | None = None,
) -> List[FileEntry]:
    """
    Convenience function to collect every file under root.

    Usage:
        entries = await walk_files(Path("/data"))
        for entry in entries:
            print(entry.path)
    """
    walker = Walker(config)
    try:
        return [entry async for entry in walker.walk(root)]
    finally:
        walker.close()

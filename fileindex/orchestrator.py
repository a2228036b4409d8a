"""
Orchestrator - Main entry point for the indexing system.

Drives one sequential pass over a directory tree:

    Walk → (Stat + Hash) → Upsert

Per-file problems (unreadable content, failed stat) produce a partial
record and a diagnostic. Storage problems stop the run.
"""

import asyncio
import logging
import sys
import time
from contextlib import aclosing
from pathlib import Path
from typing import Callable, Optional

from .config import get_config, IndexerConfig
from .errors import ConfigurationError, StorageError
from .extractor import MetadataExtractor
from .hasher import Hasher
from .indexer import IndexStore, open_store
from .models import FileEntry, FileRecord, FingerprintAlgorithm, PipelineState, ScanStats, lossy_text
from .walker import Walker


logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Sequential scan-fingerprint-upsert pipeline.

    Walker → MetadataExtractor + Hasher → IndexStore

    Each file is fully stat'ed, hashed and upserted before the next
    one is looked at. The store and the clock are passed in so tests
    can substitute an in-memory store and a fake clock.
    """

    def __init__(
        self,
        config: Optional[IndexerConfig] = None,
        store: Optional[IndexStore] = None,
        clock: Callable[[], float] = time.monotonic,
        walker: Optional[Walker] = None,
        extractor: Optional[MetadataExtractor] = None,
        hasher: Optional[Hasher] = None,
    ):
        self.config = config or get_config()

        self.clock = clock
        self.state = PipelineState.IDLE

        # Initialize components
        self._store = store if store is not None else open_store(self.config.database)
        self._walker = walker or Walker(self.config)
        self._extractor = extractor or MetadataExtractor(self.config)
        self._hasher = hasher or Hasher(self.config)

    @property
    def store(self) -> IndexStore:
        return self._store

    def prepare(self) -> None:
        """
        Connect to the store and materialize the schema.

        Raises:
            StorageError: nothing has been processed; the run cannot start
        """
        self._store.open()
        self._store.check_fingerprint_algorithm(self._hasher.algorithm.value)
        self.state = PipelineState.SCHEMA_READY

    async def run(self, root: Optional[Path] = None) -> ScanStats:
        """
        Index every regular file under root (default: config.root).

        Returns:
            Statistics about the run

        Raises:
            StorageError: the store failed; files upserted before the
                          failure stay in the index
        """
        root = Path(root).expanduser().resolve() if root is not None else self.config.root
        start_time = self.clock()
        stats = ScanStats()

        try:
            if self.state is not PipelineState.SCHEMA_READY:
                self.prepare()

            logger.info(f"Scanning directory: {root}")
            self.state = PipelineState.SCANNING

            async with aclosing(self._walker.walk(root)) as entries:
                async for entry in entries:
                    record = await self._process_entry(entry, stats)
                    self._store.upsert(record)

                    stats.files_processed += 1
                    if self.config.progress_interval and stats.files_processed % self.config.progress_interval == 0:
                        elapsed = self.clock() - start_time
                        logger.info(f"Progress: {stats.files_processed} files in {elapsed:.1f}s")
        except BaseException:
            self.state = PipelineState.FAILED
            raise

        stats.duration_seconds = self.clock() - start_time
        self.state = PipelineState.DONE
        logger.info(f"Scanning complete: {stats}")

        return stats

    async def _process_entry(self, entry: FileEntry, stats: ScanStats) -> FileRecord:
        """Stat and hash one file; either may fail without the other."""
        logger.info(f"Processing: {lossy_text(entry.path)}")

        metadata = await self._extractor.extract(entry)
        if not metadata.available:
            stats.metadata_failures += 1

        checksum = await self._hasher.hash_file(entry.path)
        if checksum is None:
            stats.checksum_failures += 1

        return FileRecord.build(entry, metadata, checksum)

    def close(self):
        """Clean up resources."""
        self._walker.close()
        self._extractor.close()
        self._hasher.close()
        self._store.close()


async def run_scan(
    root: Optional[Path] = None,
    config: Optional[IndexerConfig] = None,
) -> ScanStats:
    """
    Convenience function to run a full scan.

    Usage:
        stats = await run_scan(Path("/data"))
        print(stats)
    """
    orchestrator = Orchestrator(config)
    try:
        return await orchestrator.run(root)
    finally:
        orchestrator.close()


def main(argv: Optional[list] = None) -> int:
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Catalog a directory tree into a file index")
    parser.add_argument("--path", "-p", help="Directory to scan (default: $FILEINDEX_ROOT or cwd)")
    parser.add_argument("--db-conn", "-d", help="Database connection string (default: $FILEINDEX_DATABASE)")
    parser.add_argument(
        "--fingerprint",
        choices=[a.value for a in FingerprintAlgorithm],
        help="Fingerprint algorithm (must match the existing index)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s"
    )

    try:
        config = IndexerConfig.from_env()
        if args.path:
            config.root = Path(args.path)
        if args.db_conn:
            config.database = args.db_conn
        if args.fingerprint:
            config.fingerprint = FingerprintAlgorithm.parse(args.fingerprint)
        config.__post_init__()
        orchestrator = Orchestrator(config)
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        stats = asyncio.run(orchestrator.run())
        print(f"\n{stats}")
    except StorageError as e:
        logger.error(f"Scan aborted: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nStopped.")
        return 130
    finally:
        orchestrator.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())

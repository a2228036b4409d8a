"""
fileindex - Catalog a directory tree into a relational file index.

Modules:
    - config: Centralized configuration
    - walker: Lazy depth-first traversal of regular files
    - extractor: OS metadata (size, timestamps) per file
    - hasher: SHA-256 / xxHash64 content fingerprints
    - indexer: SQLite (and in-memory) index store with path-keyed upsert
    - orchestrator: Main entry point

Flow:
    Walk → Stat + Hash → Upsert

Usage:
    from fileindex import Orchestrator

    orchestrator = Orchestrator()
    stats = await orchestrator.run(Path("/data"))
"""

from .orchestrator import Orchestrator, run_scan

__all__ = ["Orchestrator", "run_scan"]

"""
Error Handling - Centralized error policies and custom exceptions.

This module defines how different error types are handled throughout
the indexing pipeline. Per-file filesystem errors degrade the record
being built; storage errors end the run.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


class ErrorAction(Enum):
    """What to do when an error occurs."""
    SKIP = auto()           # Drop this item (or field), continue processing
    ABORT = auto()          # Stop the entire pipeline


@dataclass
class ErrorPolicy:
    """Policy for handling a specific error type."""
    action: ErrorAction
    log_level: int
    message_template: str = "{file}: {error}"


class IndexingError(Exception):
    """Base exception for indexing errors."""
    pass


class ConfigurationError(IndexingError):
    """Invalid settings, e.g. an unsupported database connection string."""
    pass


class StorageError(IndexingError):
    """Error during database operations. Always fatal to the run."""
    pass


class FingerprintMismatchError(StorageError):
    """The index was built with a different fingerprint algorithm."""
    def __init__(self, stored: str, requested: str):
        self.stored = stored
        self.requested = requested
        super().__init__(
            f"Index fingerprints were computed with {stored!r}, "
            f"refusing to mix in {requested!r} fingerprints"
        )


# Per-file filesystem errors. Order matters: subclasses before OSError.
# Storage errors have no policy here; they propagate to the caller.
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    PermissionError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="Permission denied: {file}"
    ),
    FileNotFoundError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="File not found (possibly deleted): {file}"
    ),
    IsADirectoryError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="Expected file, got directory: {file}"
    ),
    OSError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="OS error reading file: {file} - {error}"
    ),
}


def handle_error(
    error: Exception,
    file_path: Optional[Path] = None,
    context: str = "",
    log_level: Optional[int] = None,
) -> ErrorAction:
    """
    Handle an error according to the defined policies.

    Args:
        error: The exception that occurred
        file_path: Path to the file being processed (if applicable)
        context: Additional context for logging
        log_level: Override the policy's level (the walker drops
                   unreadable entries quietly)

    Returns:
        The action to take (SKIP or ABORT)
    """
    policy = None
    for error_type, p in ERROR_POLICIES.items():
        if isinstance(error, error_type):
            policy = p
            break

    # Default policy for unknown errors
    if policy is None:
        policy = ErrorPolicy(
            action=ErrorAction.ABORT,
            log_level=logging.ERROR,
            message_template="Unexpected error: {file} - {error}"
        )

    file_str = str(file_path) if file_path else "<unknown>"
    message = policy.message_template.format(file=file_str, error=str(error))
    if context:
        message = f"[{context}] {message}"

    logger.log(policy.log_level if log_level is None else log_level, message)

    return policy.action

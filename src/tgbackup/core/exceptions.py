#%% Custom Exceptions
"""
Custom exception classes for tgbackup.

This module defines the error types raised while preparing and running a
backup. Per-unit upload failures are not exceptions at the run level: they
surface as failed DeliveryResults and the run continues.
"""

from typing import Optional


class BackupError(Exception):
    """Base exception class for all backup-related errors."""
    pass

class ConfigurationError(BackupError):
    """Raised when configuration is invalid or missing."""
    pass

class InputError(BackupError):
    """Raised when the backup source cannot be used (missing path, no messages, ...)."""
    pass

class ArchiveError(InputError):
    """Raised when an export archive cannot be extracted."""
    pass

class TransportError(BackupError):
    """Raised when a call to the remote channel fails."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.retry_after = retry_after

"""
Core backup engine for tgbackup.

Provides configuration, session persistence and the rate-limited delivery
client shared by every backup kind.

Exports:
- Settings / load_settings: YAML configuration
- SessionStore: resumable run records
- TransportClient: paced, retrying delivery to a ChannelTransport
- ChannelTransport: protocol for the raw channel API
- DeliveryResult: standard result type for a delivered unit
- ProgressTracker / BackupResult: run counters and final summary
- Backup exceptions
"""

from .client import TransportClient
from .config import Settings, load_settings
from .exceptions import (
    ArchiveError,
    BackupError,
    ConfigurationError,
    InputError,
    TransportError,
)
from .models import BackupKind, SessionRecord, SessionStatus
from .progress import BackupResult, ProgressTracker
from .session import SessionStore
from .transport import BackupObserver, ChannelTransport, DeliveryResult

__all__ = [
    "TransportClient",
    "Settings",
    "load_settings",
    "ArchiveError",
    "BackupError",
    "ConfigurationError",
    "InputError",
    "TransportError",
    "BackupKind",
    "SessionRecord",
    "SessionStatus",
    "BackupResult",
    "ProgressTracker",
    "SessionStore",
    "BackupObserver",
    "ChannelTransport",
    "DeliveryResult",
]

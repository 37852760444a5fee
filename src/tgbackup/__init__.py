"""
tgbackup: back up WhatsApp chat exports, folders and files to a Telegram channel.

Chats are re-posted organised by month and day with their media, folders
keep their section layout, and interrupted runs resume where they stopped.
"""

__version__ = "0.1.0"

# Re-export core components for convenience
from .core import BackupError, Settings, load_settings

__all__ = [
    "BackupError",
    "Settings",
    "load_settings",
]

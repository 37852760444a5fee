"""Transport abstraction for delivering backup units to a remote channel.

Architecture:
- ChannelTransport: Protocol for the raw remote API (one call, no retries)
- DeliveryResult: Standard return type for a delivered (or abandoned) unit
- BackupObserver: Presentation hooks invoked synchronously by the client,
  tracker and orchestrator; they never change control flow
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

if TYPE_CHECKING:
    from .progress import ProgressSnapshot


@dataclass
class DeliveryResult:
    """Result of delivering one unit."""

    success: bool
    label: str
    message_id: Optional[int] = None
    skipped: bool = False
    error: Optional[str] = None
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "label": self.label,
            "message_id": self.message_id,
            "skipped": self.skipped,
            "error": self.error,
            "attempts": self.attempts,
        }


class ChannelTransport(Protocol):
    """Protocol for platform-specific channel APIs.

    Send operations return the remote message identifier and raise
    TransportError when the call fails.
    """

    async def send_message(self, text: str, parse_mode: Optional[str] = None) -> int:
        ...

    async def send_photo(self, path: Path, caption: Optional[str] = None) -> int:
        ...

    async def send_video(self, path: Path, caption: Optional[str] = None) -> int:
        ...

    async def send_document(self, path: Path, caption: Optional[str] = None) -> int:
        ...

    async def send_document_bytes(
        self, data: bytes, filename: str, caption: Optional[str] = None
    ) -> int:
        ...

    async def get_me(self) -> Dict[str, Any]:
        """Resolve the identity of the sending bot/account."""
        ...

    async def get_chat(self) -> Dict[str, Any]:
        """Resolve the identity of the destination channel."""
        ...

    def message_link(self, message_id: int) -> str:
        ...


class BackupObserver:
    """No-op observer; subclass and override the hooks you need."""

    def on_retry(self, label: str, attempt: int, max_attempts: int, wait_seconds: float) -> None:
        pass

    def on_skip(self, label: str, reason: str) -> None:
        pass

    def on_fail(self, label: str, error: str) -> None:
        pass

    def on_progress(self, snapshot: "ProgressSnapshot") -> None:
        pass

    def on_section(self, text: str) -> None:
        """A header unit is about to be sent."""
        pass

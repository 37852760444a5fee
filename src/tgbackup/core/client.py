"""Rate-limited, retrying delivery of backup units to a ChannelTransport."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .exceptions import TransportError
from .files import MAX_FILE_SIZE, PHOTO, VIDEO, format_file_size, get_media_type
from .transport import BackupObserver, ChannelTransport, DeliveryResult

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL = 3.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 5.0


class TransportClient:
    """Delivers one unit at a time to the channel.

    - Every unit waits until at least ``min_interval`` seconds have passed since
      the previous unit was sent. The clock belongs to this instance.
    - A failing call is retried up to ``retry_attempts`` times with a linear
      backoff of ``retry_delay * attempt`` seconds. After the last attempt the
      failure is reported as a DeliveryResult, never raised.
    - Files over the size ceiling are skipped before any wait or call.
    """

    def __init__(
        self,
        transport: ChannelTransport,
        *,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_file_size: int = MAX_FILE_SIZE,
        observer: Optional[BackupObserver] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self.transport = transport
        self.min_interval = min_interval
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.max_file_size = max_file_size
        self.observer = observer or BackupObserver()
        self._sleep = sleep
        self._clock = clock
        self._last_send: Optional[float] = None

    async def _rate_limit(self) -> None:
        if self._last_send is not None:
            elapsed = self._clock() - self._last_send
            if elapsed < self.min_interval:
                await self._sleep(self.min_interval - elapsed)
        self._last_send = self._clock()

    def _backoff(self, attempt: int, error: TransportError) -> float:
        wait = self.retry_delay * attempt
        if error.retry_after is not None:
            wait = max(wait, float(error.retry_after))
        return wait

    async def _deliver(self, label: str, call: Callable[[], Awaitable[int]]) -> DeliveryResult:
        await self._rate_limit()

        for attempt in range(1, self.retry_attempts + 1):
            try:
                message_id = await call()
                logger.debug(
                    "Delivered unit",
                    extra={"label": label, "message_id": message_id, "attempt": attempt},
                )
                return DeliveryResult(
                    success=True, label=label, message_id=message_id, attempts=attempt
                )
            except TransportError as e:
                if attempt < self.retry_attempts:
                    wait = self._backoff(attempt, e)
                    logger.warning(
                        "Send failed, retrying",
                        extra={
                            "label": label,
                            "attempt": attempt,
                            "max_attempts": self.retry_attempts,
                            "wait_seconds": wait,
                            "error": str(e),
                        },
                    )
                    self.observer.on_retry(label, attempt, self.retry_attempts, wait)
                    await self._sleep(wait)
                else:
                    logger.error(
                        "Send failed after retries",
                        extra={"label": label, "attempts": attempt, "error": str(e)},
                    )
                    self.observer.on_fail(label, str(e))
                    return DeliveryResult(
                        success=False, label=label, error=str(e), attempts=attempt
                    )

        # Unreachable: the loop always returns on its final attempt
        return DeliveryResult(success=False, label=label, error="no attempts made")

    def _skip(self, label: str, size: int) -> DeliveryResult:
        reason = (
            f"Exceeds {format_file_size(self.max_file_size)} limit ({format_file_size(size)})"
        )
        logger.info("Skipping oversize unit", extra={"label": label, "size": size})
        self.observer.on_skip(label, reason)
        return DeliveryResult(success=False, label=label, skipped=True, error=reason)

    def _check_file(self, path: Path) -> Tuple[str, Optional[DeliveryResult]]:
        # stat() errors (file vanished mid-run) propagate to the caller
        size = path.stat().st_size
        if size > self.max_file_size:
            return path.name, self._skip(path.name, size)
        return path.name, None

    async def send_text(
        self, text: str, parse_mode: Optional[str] = None, *, label: str = "message"
    ) -> DeliveryResult:
        return await self._deliver(label, lambda: self.transport.send_message(text, parse_mode))

    async def send_photo(self, path: Path, caption: Optional[str] = None) -> DeliveryResult:
        path = Path(path)
        label, skipped = self._check_file(path)
        if skipped:
            return skipped
        return await self._deliver(label, lambda: self.transport.send_photo(path, caption))

    async def send_video(self, path: Path, caption: Optional[str] = None) -> DeliveryResult:
        path = Path(path)
        label, skipped = self._check_file(path)
        if skipped:
            return skipped
        return await self._deliver(label, lambda: self.transport.send_video(path, caption))

    async def send_document(self, path: Path, caption: Optional[str] = None) -> DeliveryResult:
        path = Path(path)
        label, skipped = self._check_file(path)
        if skipped:
            return skipped
        return await self._deliver(label, lambda: self.transport.send_document(path, caption))

    async def send_document_bytes(
        self, data: bytes, filename: str, caption: Optional[str] = None
    ) -> DeliveryResult:
        if len(data) > self.max_file_size:
            return self._skip(filename, len(data))
        return await self._deliver(
            filename, lambda: self.transport.send_document_bytes(data, filename, caption)
        )

    async def send_file(self, path: Path, caption: Optional[str] = None) -> DeliveryResult:
        """Send a file through the photo, video or document path based on its extension."""
        media_type = get_media_type(path)
        if media_type == PHOTO:
            return await self.send_photo(path, caption)
        if media_type == VIDEO:
            return await self.send_video(path, caption)
        return await self.send_document(path, caption)

    async def validate(self) -> Dict[str, Any]:
        """Check the credentials and the channel.

        Returns {"valid": bool, "bot_username": str | None, "chat_title": str | None,
        "error": str | None}.
        """
        try:
            me = await self.transport.get_me()
            chat = await self.transport.get_chat()
        except TransportError as e:
            logger.error("Channel validation failed", extra={"error": str(e)})
            return {"valid": False, "bot_username": None, "chat_title": None, "error": str(e)}
        return {
            "valid": True,
            "bot_username": me.get("username"),
            "chat_title": chat.get("title") or chat.get("username"),
            "error": None,
        }

    def message_link(self, message_id: int) -> str:
        return self.transport.message_link(message_id)

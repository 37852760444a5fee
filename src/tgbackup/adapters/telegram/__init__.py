"""Telegram Bot API adapter for tgbackup."""

from .api import TelegramBotApi, normalize_chat_id

__all__ = ["TelegramBotApi", "normalize_chat_id"]

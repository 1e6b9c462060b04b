"""Notification fan-out over independent delivery providers."""

from .base import NotificationDispatcher, NotificationProvider
from .console import ConsoleProvider
from .pushover import PushoverConfig, PushoverProvider
from .telegram import TelegramConfig, TelegramProvider, split_telegram_message

__all__ = [
    "ConsoleProvider",
    "NotificationDispatcher",
    "NotificationProvider",
    "PushoverConfig",
    "PushoverProvider",
    "TelegramConfig",
    "TelegramProvider",
    "split_telegram_message",
]

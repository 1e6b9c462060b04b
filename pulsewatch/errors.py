"""Exception hierarchy for the monitoring engine."""

from __future__ import annotations


class PulsewatchError(Exception):
    """Base class for every error raised by pulsewatch."""


class ConfigurationError(PulsewatchError):
    """Invalid or missing configuration. Raised before anything starts."""


class InvalidTargetError(ConfigurationError):
    """A target definition failed validation."""


class NotificationError(PulsewatchError):
    """A notification could not be delivered."""


class MonitorTaskError(PulsewatchError):
    """A service monitor stopped running."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Monitoring failed for {url}: {message}")
        self.url = url

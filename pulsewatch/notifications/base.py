from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from ..errors import NotificationError


logger = structlog.get_logger(__name__)


@runtime_checkable
class NotificationProvider(Protocol):
    """One independent delivery channel.

    ``send`` raises ``NotificationError`` when the message was not delivered.
    """

    name: str

    async def send(self, message: str) -> None:  # pragma: no cover - interface
        ...


class NotificationDispatcher:
    """Broadcasts a message to every registered provider.

    Delivery succeeds when at least one provider accepted the message. Only
    when every provider failed is a ``NotificationError`` raised, listing each
    provider's error.
    """

    def __init__(self, providers: list[NotificationProvider] | None = None):
        self._providers: list[NotificationProvider] = []
        for provider in providers or []:
            self.add_provider(provider)

    @property
    def providers(self) -> tuple[NotificationProvider, ...]:
        return tuple(self._providers)

    def add_provider(self, provider: NotificationProvider) -> None:
        self._providers.append(provider)
        logger.debug("Registered notification provider", provider=provider.name)

    def __len__(self) -> int:
        return len(self._providers)

    async def send(self, message: str) -> None:
        if not self._providers:
            logger.debug("No notification providers registered; dropping message", message=message)
            return

        failures: list[tuple[str, str]] = []
        for provider in self._providers:
            try:
                await provider.send(message)
            except Exception as e:  # one broken provider must not stop the others
                failures.append((provider.name, str(e) or type(e).__name__))
                logger.warning("Notification provider failed", provider=provider.name, error=str(e))
            else:
                logger.debug("Notification delivered", provider=provider.name)

        if len(failures) == len(self._providers):
            details = "; ".join(f"{name}: {error}" for name, error in failures)
            raise NotificationError(f"All notification providers failed: {details}")

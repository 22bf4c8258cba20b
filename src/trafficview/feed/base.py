"""Feed abstraction.

A feed delivers whole traffic snapshots (or ``None`` for "no data") for a
named channel.  Backends invoke the handlers on the host's event loop, one
message at a time.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

MessageHandler = Callable[[Any], None]
"""Receives the decoded payload for a channel, or ``None`` when it is empty."""

ErrorHandler = Callable[[BaseException | None], None]

_logger = logging.getLogger(__name__)

_tokens = itertools.count(1)


@dataclass(frozen=True, slots=True)
class Subscription:
    """Opaque handle returned by :meth:`TrafficFeed.subscribe`."""

    channel: str
    token: int


class TrafficFeed(Protocol):
    """Structural feed interface consumed by the reconciler.

    Keeping this a protocol lets tests pass an in-memory feed while the
    production backends stay concrete.
    """

    def subscribe(self, channel: str, on_message: MessageHandler, on_error: ErrorHandler) -> Subscription:
        ...

    def unsubscribe(self, subscription: Subscription) -> None:
        ...


@dataclass(frozen=True, slots=True)
class _Handlers:
    subscription: Subscription
    on_message: MessageHandler
    on_error: ErrorHandler


class SubscriberRegistry:
    """Bookkeeping for channel subscribers shared by the feed backends."""

    def __init__(self) -> None:
        self._handlers: dict[int, _Handlers] = {}

    def __len__(self) -> int:
        return len(self._handlers)

    def add(self, channel: str, on_message: MessageHandler, on_error: ErrorHandler) -> Subscription:
        subscription = Subscription(channel=channel, token=next(_tokens))
        self._handlers[subscription.token] = _Handlers(subscription, on_message, on_error)
        return subscription

    def remove(self, subscription: Subscription) -> bool:
        """Forget *subscription*; ``False`` if it was not registered."""
        return self._handlers.pop(subscription.token, None) is not None

    def __contains__(self, subscription: object) -> bool:
        return isinstance(subscription, Subscription) and subscription.token in self._handlers

    def channels(self) -> set[str]:
        return {entry.subscription.channel for entry in self._handlers.values()}

    def count(self, channel: str) -> int:
        return sum(1 for entry in self._handlers.values() if entry.subscription.channel == channel)

    def dispatch_message(self, channel: str, payload: Any) -> None:
        for entry in self._for_channel(channel):
            try:
                entry.on_message(payload)
            except Exception:
                _logger.exception("Message handler failed channel=%s", channel)

    def dispatch_error(self, channel: str, error: BaseException | None) -> None:
        for entry in self._for_channel(channel):
            try:
                entry.on_error(error)
            except Exception:
                _logger.exception("Error handler failed channel=%s", channel)

    def dispatch_message_to(self, subscription: Subscription, payload: Any) -> None:
        entry = self._handlers.get(subscription.token)
        if entry is None:
            return
        try:
            entry.on_message(payload)
        except Exception:
            _logger.exception("Message handler failed channel=%s", subscription.channel)

    def dispatch_error_to(self, subscription: Subscription, error: BaseException | None) -> None:
        entry = self._handlers.get(subscription.token)
        if entry is None:
            return
        try:
            entry.on_error(error)
        except Exception:
            _logger.exception("Error handler failed channel=%s", subscription.channel)

    def _for_channel(self, channel: str) -> list[_Handlers]:
        # Snapshot the list so handlers may unsubscribe while being called.
        return [entry for entry in self._handlers.values() if entry.subscription.channel == channel]

"""In-process feed.

Behaves like a realtime database "value" listener: each channel retains
its last published value and a new subscriber receives it immediately.
Useful as a test double and for driving the renderer from local code.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from trafficview.exceptions import FeedSubscriptionError, FeedUnavailableError
from trafficview.feed.base import ErrorHandler, MessageHandler, SubscriberRegistry, Subscription

_logger = logging.getLogger(__name__)


class InMemoryFeed:
    def __init__(self, *, refuse_subscriptions: bool = False) -> None:
        self._registry = SubscriberRegistry()
        self._retained: dict[str, Any] = {}
        self._refuse_subscriptions = refuse_subscriptions
        self.unsubscribe_calls = 0

    def subscriber_count(self, channel: str | None = None) -> int:
        if channel is None:
            return len(self._registry)
        return self._registry.count(channel)

    def subscribe(self, channel: str, on_message: MessageHandler, on_error: ErrorHandler) -> Subscription:
        if self._refuse_subscriptions:
            raise FeedSubscriptionError(f"subscriptions to {channel!r} are refused", channel=channel)
        subscription = self._registry.add(channel, on_message, on_error)
        _logger.debug("In-memory subscribe channel=%s token=%s", channel, subscription.token)
        if channel in self._retained:
            self._registry.dispatch_message_to(subscription, copy.deepcopy(self._retained[channel]))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self.unsubscribe_calls += 1
        if not self._registry.remove(subscription):
            _logger.debug("In-memory unsubscribe for unknown token=%s", subscription.token)

    def publish(self, channel: str, payload: Any) -> None:
        """Replace the channel value and deliver it to every subscriber."""
        self._retained[channel] = copy.deepcopy(payload)
        self._registry.dispatch_message(channel, copy.deepcopy(payload))

    def clear(self, channel: str) -> None:
        """Remove the channel value; subscribers receive ``None``."""
        self._retained.pop(channel, None)
        self._registry.dispatch_message(channel, None)

    def fail(self, channel: str, error: BaseException | None = None) -> None:
        """Signal a connection failure to every subscriber of *channel*."""
        if error is None:
            error = FeedUnavailableError(f"feed for {channel!r} is unavailable", channel=channel)
        self._registry.dispatch_error(channel, error)

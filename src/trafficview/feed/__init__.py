"""Realtime feed abstraction and backends.

Backends deliver whole snapshots for a channel; they never merge or
interpret traffic data themselves.
"""

from trafficview.feed.base import ErrorHandler, MessageHandler, SubscriberRegistry, Subscription, TrafficFeed
from trafficview.feed.memory import InMemoryFeed

__all__ = [
    "ErrorHandler",
    "InMemoryFeed",
    "MessageHandler",
    "SubscriberRegistry",
    "Subscription",
    "TrafficFeed",
]

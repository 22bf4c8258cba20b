"""Custom exception hierarchy for trafficview."""

from __future__ import annotations


class TrafficViewError(Exception):
    """Base exception for all trafficview errors."""


class TrafficViewConfigError(TrafficViewError):
    """Invalid or missing configuration."""


class FeedError(TrafficViewError):
    """Realtime feed failure."""

    def __init__(self, message: str, *, channel: str = "") -> None:
        self.channel = channel
        super().__init__(message)


class FeedUnavailableError(FeedError):
    """Connection to the feed was lost or refused.

    Backends hand this to subscribers through ``on_error``.  It is never
    raised out of the reconciler; it only degrades the connectivity flag.
    """


class FeedSubscriptionError(FeedError):
    """The initial subscription to a channel could not be established."""


class MalformedSnapshotError(TrafficViewError):
    """A feed payload does not have the shape of a traffic snapshot."""

"""Feed backend selection."""

from __future__ import annotations

import asyncio

from trafficview.config import TrafficViewConfig
from trafficview.feed.firebase import FirebaseFeed
from trafficview.feed.mqtt import MqttFeed


def create_feed(config: TrafficViewConfig, loop: asyncio.AbstractEventLoop) -> MqttFeed | FirebaseFeed:
    """Build the feed backend named by ``config.feed``."""
    if config.feed == "firebase":
        return FirebaseFeed.from_config(config)
    return MqttFeed.from_config(config, loop)

"""Runtime configuration for trafficview."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from trafficview.exceptions import TrafficViewConfigError
from trafficview.models.scene import CanvasSize

FEED_BACKENDS: frozenset[str] = frozenset({"mqtt", "firebase"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, kind: type[int] | type[float]) -> int | float | None:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise TrafficViewConfigError(f"{key} must be a {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class TrafficViewConfig:
    """Feed and canvas configuration.

    Parameters
    ----------
    feed : str
        Feed backend, ``"mqtt"`` or ``"firebase"``.
    channel : str
        Name of the channel carrying whole traffic snapshots.
    canvas_width, canvas_height : float
        Size of the drawing surface the scene is laid out for.
    mqtt_host, mqtt_port : str, int
        MQTT broker address.
    mqtt_topic_prefix : str
        Prefix prepended to the channel to form the MQTT topic.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Connect to the broker over TLS.
    firebase_url : str or None
        Realtime Database root URL, e.g.
        ``"https://example-default-rtdb.firebaseio.com"``.
    reconnect_delay : float
        Seconds the streaming feed waits before reopening a dropped stream.
    """

    feed: str = "mqtt"
    channel: str = "traffic"
    canvas_width: float = 380.0
    canvas_height: float = 380.0
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic_prefix: str = ""
    mqtt_keepalive: int = 60
    mqtt_tls: bool = False
    firebase_url: str | None = None
    reconnect_delay: float = 5.0

    def __post_init__(self) -> None:
        if self.feed not in FEED_BACKENDS:
            raise TrafficViewConfigError(f"feed must be one of {sorted(FEED_BACKENDS)}, got {self.feed!r}")
        if not self.channel.strip():
            raise TrafficViewConfigError("channel must be non-empty")
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise TrafficViewConfigError(
                f"canvas dimensions must be positive, got {self.canvas_width}x{self.canvas_height}"
            )
        if self.feed == "firebase" and not self.firebase_url:
            raise TrafficViewConfigError("firebase_url is required for the firebase feed")
        if self.reconnect_delay < 0:
            raise TrafficViewConfigError("reconnect_delay must not be negative")

    @property
    def canvas(self) -> CanvasSize:
        return CanvasSize(width=self.canvas_width, height=self.canvas_height)

    @classmethod
    def from_env(cls, **overrides: Any) -> TrafficViewConfig:
        """Create configuration from ``TRAFFICVIEW_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TRAFFICVIEW_FEED": "feed",
            "TRAFFICVIEW_CHANNEL": "channel",
            "TRAFFICVIEW_MQTT_HOST": "mqtt_host",
            "TRAFFICVIEW_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
            "TRAFFICVIEW_FIREBASE_URL": "firebase_url",
        }
        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "TRAFFICVIEW_CANVAS_WIDTH": ("canvas_width", float),
            "TRAFFICVIEW_CANVAS_HEIGHT": ("canvas_height", float),
            "TRAFFICVIEW_MQTT_PORT": ("mqtt_port", int),
            "TRAFFICVIEW_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "TRAFFICVIEW_RECONNECT_DELAY": ("reconnect_delay", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        for env_key, (field_name, kind) in _ENV_NUMBER_MAP.items():
            if field_name in overrides:
                continue
            number = _env_number(env, env_key, kind)
            if number is not None:
                config_kwargs[field_name] = number

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("TRAFFICVIEW_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

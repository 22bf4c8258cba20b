from __future__ import annotations

import asyncio

import pytest

from trafficview.config import TrafficViewConfig
from trafficview.exceptions import TrafficViewConfigError
from trafficview.feed.factory import create_feed
from trafficview.feed.firebase import FirebaseFeed
from trafficview.feed.mqtt import MqttFeed
from trafficview.models.scene import CanvasSize

_ENV_KEYS = (
    "TRAFFICVIEW_FEED",
    "TRAFFICVIEW_CHANNEL",
    "TRAFFICVIEW_CANVAS_WIDTH",
    "TRAFFICVIEW_CANVAS_HEIGHT",
    "TRAFFICVIEW_MQTT_HOST",
    "TRAFFICVIEW_MQTT_PORT",
    "TRAFFICVIEW_MQTT_TOPIC_PREFIX",
    "TRAFFICVIEW_MQTT_KEEPALIVE",
    "TRAFFICVIEW_MQTT_TLS",
    "TRAFFICVIEW_FIREBASE_URL",
    "TRAFFICVIEW_RECONNECT_DELAY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = TrafficViewConfig.from_env()
    assert config == TrafficViewConfig()
    assert config.canvas == CanvasSize(380.0, 380.0)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRAFFICVIEW_FEED", "firebase")
    monkeypatch.setenv("TRAFFICVIEW_FIREBASE_URL", " https://demo-default-rtdb.firebaseio.com ")
    monkeypatch.setenv("TRAFFICVIEW_CHANNEL", "junction-a")
    monkeypatch.setenv("TRAFFICVIEW_CANVAS_WIDTH", "760")
    monkeypatch.setenv("TRAFFICVIEW_MQTT_PORT", "8883")
    monkeypatch.setenv("TRAFFICVIEW_MQTT_TLS", "yes")
    monkeypatch.setenv("TRAFFICVIEW_RECONNECT_DELAY", "0.5")

    config = TrafficViewConfig.from_env()

    assert config.feed == "firebase"
    assert config.firebase_url == "https://demo-default-rtdb.firebaseio.com"
    assert config.channel == "junction-a"
    assert config.canvas == CanvasSize(760.0, 380.0)
    assert config.mqtt_port == 8883
    assert config.mqtt_tls is True
    assert config.reconnect_delay == 0.5


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRAFFICVIEW_MQTT_HOST", "env-broker")
    monkeypatch.setenv("TRAFFICVIEW_MQTT_PORT", "not-a-port")

    config = TrafficViewConfig.from_env(mqtt_host="cli-broker", mqtt_port=1884)

    assert config.mqtt_host == "cli-broker"
    assert config.mqtt_port == 1884


def test_invalid_number_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRAFFICVIEW_CANVAS_HEIGHT", "tall")
    with pytest.raises(TrafficViewConfigError, match="TRAFFICVIEW_CANVAS_HEIGHT"):
        TrafficViewConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"feed": "carrier-pigeon"},
        {"channel": "  "},
        {"canvas_width": 0.0},
        {"feed": "firebase"},
        {"reconnect_delay": -1.0},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(TrafficViewConfigError):
        TrafficViewConfig(**kwargs)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_create_feed_selects_backend() -> None:
    loop = asyncio.get_running_loop()
    assert isinstance(create_feed(TrafficViewConfig(), loop), MqttFeed)

    firebase = create_feed(TrafficViewConfig(feed="firebase", firebase_url="https://demo.invalid"), loop)
    assert isinstance(firebase, FirebaseFeed)
    assert firebase.url_for("traffic") == "https://demo.invalid/traffic.json"

from __future__ import annotations

from trafficview.feed.memory import InMemoryFeed
from trafficview.models.lanes import Lane
from trafficview.models.scene import CanvasSize, Scene
from trafficview.monitor import IntersectionMonitor

SNAPSHOT = {
    "vehicle_count": 5,
    "emergency_lane": [2],
    "lane_vehicle_counts": {"1": 2, "2": 3, "3": 0, "4": 0},
}


def test_scene_follows_feed() -> None:
    feed = InMemoryFeed()
    with IntersectionMonitor(feed) as monitor:
        assert monitor.scene.markers == ()

        feed.publish("traffic", SNAPSHOT)
        scene = monitor.scene
        assert len(scene.lane(Lane.EAST).markers) == 3
        assert scene.lane(Lane.EAST).markers[0].emergency is True


def test_scene_is_cached_until_snapshot_changes() -> None:
    feed = InMemoryFeed()
    with IntersectionMonitor(feed) as monitor:
        feed.publish("traffic", SNAPSHOT)
        first = monitor.scene
        assert monitor.scene is first

        # Disconnect keeps the snapshot, and therefore the scene.
        feed.publish("traffic", None)
        assert monitor.scene is first
        assert monitor.connected is False

        feed.publish("traffic", {"lane_vehicle_counts": {"1": 1}})
        assert monitor.scene is not first


def test_on_scene_callback_receives_each_change() -> None:
    feed = InMemoryFeed()
    pushed: list[tuple[Scene, bool]] = []
    monitor = IntersectionMonitor(feed, canvas=CanvasSize(760.0, 760.0), on_scene=lambda s, c: pushed.append((s, c)))

    with monitor:
        feed.publish("traffic", SNAPSHOT)
        feed.fail("traffic")

    assert [connected for _scene, connected in pushed] == [True, False]
    assert pushed[0][0].canvas == CanvasSize(760.0, 760.0)
    assert len(pushed[1][0].markers) == 5


def test_summary_reflects_state() -> None:
    feed = InMemoryFeed()
    with IntersectionMonitor(feed) as monitor:
        feed.publish("traffic", SNAPSHOT)
        summary = monitor.summary

    assert summary.connected is True
    assert summary.total_vehicles == 5
    assert summary.emergency_lanes == (Lane.EAST,)
    assert [lane.count for lane in summary.lanes] == [2, 3, 0, 0]


def test_close_detaches_listener() -> None:
    feed = InMemoryFeed()
    pushed: list[bool] = []
    monitor = IntersectionMonitor(feed, on_scene=lambda _s, c: pushed.append(c))
    monitor.start()
    monitor.close()

    assert feed.subscriber_count() == 0
    monitor.reconciler._on_message(SNAPSHOT)  # noqa: SLF001
    assert pushed == []


def test_summary_status_names_source() -> None:
    feed = InMemoryFeed()
    with IntersectionMonitor(feed, source="MQTT") as monitor:
        assert monitor.summary.status_text == "Disconnected"
        feed.publish("traffic", SNAPSHOT)
        assert monitor.summary.status_text == "Connected to MQTT"

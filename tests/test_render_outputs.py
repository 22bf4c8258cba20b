"""Tests for the SVG surface and the textual summary."""

from __future__ import annotations

from xml.etree import ElementTree

from trafficview.models.lanes import Lane
from trafficview.models.snapshot import TrafficSnapshot
from trafficview.render.builder import build_scene
from trafficview.render.summary import summarize
from trafficview.render.svg import render_svg

_NS = "{http://www.w3.org/2000/svg}"

SNAPSHOT = TrafficSnapshot.model_validate(
    {
        "vehicle_count": 7,
        "emergency_lane": [2, 9],
        "lane_vehicle_counts": {"1": 2, "2": 3, "3": 0, "4": 1},
    }
)


def _parse(svg: str) -> ElementTree.Element:
    return ElementTree.fromstring(svg)


class TestSvg:
    def test_document_is_well_formed_with_viewbox(self) -> None:
        root = _parse(render_svg(build_scene(SNAPSHOT)))
        assert root.tag == f"{_NS}svg"
        assert root.get("viewBox") == "0 0 380 380"

    def test_one_circle_per_marker(self) -> None:
        circles = _parse(render_svg(build_scene(SNAPSHOT))).findall(f"{_NS}circle")
        assert len(circles) == 6
        assert [c.get("data-key") for c in circles] == ["1-0", "1-1", "2-0", "2-1", "2-2", "4-0"]

    def test_emergency_marker_attributes(self) -> None:
        circles = _parse(render_svg(build_scene(SNAPSHOT))).findall(f"{_NS}circle")
        lead = next(c for c in circles if c.get("data-key") == "2-0")
        assert lead.get("r") == "4"
        assert lead.get("fill") == "#ef4444"
        assert lead.get("stroke") == "#dc2626"
        assert lead.get("stroke-width") == "2"
        assert lead.get("class") == "animate-pulse"
        assert "drop-shadow(0 0 8px #ef4444)" in (lead.get("style") or "")

        follower = next(c for c in circles if c.get("data-key") == "2-1")
        assert follower.get("stroke") == "none"
        assert follower.get("class") is None
        assert "drop-shadow(0 0 4px #a855f7)" in (follower.get("style") or "")

    def test_labels_and_road_rects(self) -> None:
        root = _parse(render_svg(build_scene(SNAPSHOT)))
        assert [t.text for t in root.findall(f"{_NS}text")] == ["Road-1", "Road-2", "Road-3", "Road-4"]
        # background + 2 roads + intersection + 4 dividers
        assert len(root.findall(f"{_NS}rect")) == 8

    def test_rendering_is_deterministic(self) -> None:
        assert render_svg(build_scene(SNAPSHOT)) == render_svg(build_scene(SNAPSHOT))


class TestSummary:
    def test_totals_come_from_feed_not_lane_sum(self) -> None:
        summary = summarize(SNAPSHOT, connected=True)
        assert summary.total_vehicles == 7
        assert sum(lane.count for lane in summary.lanes) == 6

    def test_emergency_lanes_only_known_and_sorted(self) -> None:
        summary = summarize(SNAPSHOT, connected=True)
        assert summary.emergency_lanes == (Lane.EAST,)
        assert summary.emergency_text == "2"
        assert [lane.emergency for lane in summary.lanes] == [False, True, False, False]

    def test_no_emergency_and_disconnected_text(self) -> None:
        summary = summarize(TrafficSnapshot(), connected=False)
        assert summary.emergency_text == "None"
        assert summary.status_text == "Disconnected"
        assert [lane.label for lane in summary.lanes] == ["Road-1", "Road-2", "Road-3", "Road-4"]

    def test_status_text_names_the_backend_when_connected(self) -> None:
        assert summarize(SNAPSHOT, connected=True, source="Firebase").status_text == "Connected to Firebase"
        assert summarize(SNAPSHOT, connected=True).status_text == "Connected"
        assert summarize(SNAPSHOT, connected=False, source="Firebase").status_text == "Disconnected"

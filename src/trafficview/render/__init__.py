"""Scene building and rendering.

Everything in this package is pure: it reads a snapshot and returns new
values without touching feed or reconciler state.
"""

from trafficview.render.builder import build_scene
from trafficview.render.summary import LaneSummary, TrafficSummary, summarize
from trafficview.render.svg import render_svg

__all__ = ["LaneSummary", "TrafficSummary", "build_scene", "render_svg", "summarize"]

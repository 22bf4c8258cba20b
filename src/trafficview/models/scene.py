"""Renderer-agnostic scene primitives.

A :class:`Scene` is fully derived from a snapshot and a canvas size.  All
types here are frozen value objects; a new scene is built on every
snapshot change rather than mutated.
"""

from __future__ import annotations

from dataclasses import dataclass

from trafficview.models.lanes import Lane


@dataclass(frozen=True, slots=True)
class CanvasSize:
    width: float = 380.0
    height: float = 380.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"canvas dimensions must be positive, got {self.width}x{self.height}")

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2


@dataclass(frozen=True, slots=True)
class Glow:
    """Drop-shadow halo drawn around a marker."""

    blur: float
    color: str


@dataclass(frozen=True, slots=True)
class RectShape:
    x: float
    y: float
    width: float
    height: float
    fill: str
    corner_radius: float = 0.0


@dataclass(frozen=True, slots=True)
class VehicleMarker:
    """One queued vehicle.

    ``key`` is stable across re-renders for the same lane/index pair so a
    retained-mode surface can reuse the element instead of recreating it.
    """

    key: str
    lane: Lane
    index: int
    cx: float
    cy: float
    radius: float
    fill: str
    stroke: str | None
    stroke_width: float
    glow: Glow
    emergency: bool
    pulse: bool


@dataclass(frozen=True, slots=True)
class TextLabel:
    x: float
    y: float
    text: str
    fill: str
    font_size: float
    font_weight: str = "bold"


@dataclass(frozen=True, slots=True)
class LaneScene:
    lane: Lane
    markers: tuple[VehicleMarker, ...]
    label: TextLabel
    emergency: bool


@dataclass(frozen=True, slots=True)
class Scene:
    canvas: CanvasSize
    roads: tuple[RectShape, ...]
    intersection: RectShape
    dividers: tuple[RectShape, ...]
    lanes: tuple[LaneScene, ...]

    def lane(self, lane: int) -> LaneScene:
        for lane_scene in self.lanes:
            if lane_scene.lane == lane:
                return lane_scene
        raise KeyError(f"lane {lane!r} is not part of this scene")

    @property
    def markers(self) -> tuple[VehicleMarker, ...]:
        return tuple(marker for lane_scene in self.lanes for marker in lane_scene.markers)

    @property
    def labels(self) -> tuple[TextLabel, ...]:
        return tuple(lane_scene.label for lane_scene in self.lanes)

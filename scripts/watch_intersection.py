#!/usr/bin/env python3
"""Watch a live traffic feed and keep an SVG of the intersection up to date.

Configuration comes from ``TRAFFICVIEW_*`` environment variables (see
``TrafficViewConfig.from_env``); command-line flags override them.

Examples::

    TRAFFICVIEW_MQTT_HOST=broker.local python scripts/watch_intersection.py -o intersection.svg
    python scripts/watch_intersection.py --feed firebase \\
        --firebase-url https://example-default-rtdb.firebaseio.com --duration 60
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from trafficview import IntersectionMonitor, Scene, TrafficViewConfig, render_svg  # noqa: E402
from trafficview.exceptions import TrafficViewError  # noqa: E402
from trafficview.feed.factory import create_feed  # noqa: E402
from trafficview.render.summary import TrafficSummary  # noqa: E402

_LOG = logging.getLogger("watch_intersection")

_SOURCE_NAMES = {"mqtt": "MQTT", "firebase": "Firebase"}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render a live four-way intersection from a traffic feed.",
    )
    parser.add_argument("--feed", choices=("mqtt", "firebase"), help="Feed backend.")
    parser.add_argument("--channel", help="Channel carrying traffic snapshots.")
    parser.add_argument("--mqtt-host", help="MQTT broker host.")
    parser.add_argument("--mqtt-port", type=int, help="MQTT broker port.")
    parser.add_argument("--firebase-url", help="Realtime Database root URL.")
    parser.add_argument("--size", type=float, help="Canvas width and height in pixels.")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("intersection.svg"),
        help="SVG file rewritten on every change.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for arg_name, field_name in (
        ("feed", "feed"),
        ("channel", "channel"),
        ("mqtt_host", "mqtt_host"),
        ("mqtt_port", "mqtt_port"),
        ("firebase_url", "firebase_url"),
        ("size", "canvas_width"),
        ("size", "canvas_height"),
    ):
        value = getattr(args, arg_name)
        if value is not None:
            overrides[field_name] = value
    return overrides


def _print_summary(summary: TrafficSummary) -> None:
    lanes = "  ".join(
        f"{lane.label}={lane.count}{' [EMERGENCY]' if lane.emergency else ''}" for lane in summary.lanes
    )
    print(
        f"[watch] {summary.status_text:<12} total={summary.total_vehicles:<4} "
        f"emergency={summary.emergency_text:<8} {lanes}"
    )


async def _watch(config: TrafficViewConfig, output: Path, duration: int) -> int:
    loop = asyncio.get_running_loop()
    feed = create_feed(config, loop)
    stop_event = asyncio.Event()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    monitor: IntersectionMonitor

    def _on_scene(scene: Scene, _connected: bool) -> None:
        output.write_text(render_svg(scene), encoding="utf-8")
        _print_summary(monitor.summary)

    monitor = IntersectionMonitor(
        feed,
        canvas=config.canvas,
        channel=config.channel,
        on_scene=_on_scene,
        source=_SOURCE_NAMES[config.feed],
    )
    try:
        with monitor:
            # Draw the initial, disconnected state before the first message.
            output.write_text(render_svg(monitor.scene), encoding="utf-8")
            _LOG.info("Watching channel=%s via %s, writing %s", config.channel, config.feed, output)
            timeout = duration if duration > 0 else None
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout)
    finally:
        await feed.aclose()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = TrafficViewConfig.from_env(**_overrides(args))
        return asyncio.run(_watch(config, args.output, args.duration))
    except TrafficViewError as exc:
        print(f"[watch] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())

import math

import pytest

from guide_overlay import build_guide_overlay
from spirotrace_core import TraceAccumulator
from spirotrace_math import GearConfig, gear_pose


def test_overlay_matches_pose():
    config = GearConfig(fixed_scale=100.0, moving_radius=25.0, pen_offset=50.0)
    overlay = build_guide_overlay(config, 6.0)
    pose = gear_pose(config, 6.0)
    assert overlay.gear_center == pytest.approx(pose.center)
    assert overlay.pen == pytest.approx(pose.pen)
    assert overlay.gear_radius == 25.0
    assert overlay.arm == (overlay.gear_center, overlay.pen)
    assert len(overlay.outline) == 200
    for x, y in overlay.outline:
        assert math.isclose(math.hypot(x, y), 100.0)


def test_widths_scale_inversely_with_zoom():
    config = GearConfig()
    at_one = build_guide_overlay(config, 0.0, 1.0, stroke_width=2.0)
    at_two = build_guide_overlay(config, 0.0, 2.0, stroke_width=2.0)
    assert at_one.outline_width == 2.0
    assert at_one.arm_width == 1.5
    assert at_one.marker_outline_width == 1.0
    assert at_one.marker_radius == 4.0
    assert at_two.outline_width == 1.0
    assert at_two.marker_radius == 2.0


def test_marker_grows_with_stroke_width():
    overlay = build_guide_overlay(GearConfig(), 0.0, stroke_width=12.0)
    assert overlay.marker_radius == 7.0


def test_overlay_does_not_touch_trace():
    config = GearConfig()
    trace = TraceAccumulator()
    trace.advance(config, 3)
    before = trace.snapshot()
    build_guide_overlay(config, trace.distance, 0.5)
    assert trace.snapshot() == before

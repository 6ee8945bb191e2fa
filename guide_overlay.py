from __future__ import annotations

from typing import List, NamedTuple, Tuple

from shape_geometry import sample_outline
from spirotrace_math import GearConfig, gear_pose

Point = Tuple[float, float]

OUTLINE_WIDTH = 2.0
ARM_WIDTH = 1.5
MARKER_OUTLINE_WIDTH = 1.0
MIN_MARKER_RADIUS = 4.0


class GuideOverlay(NamedTuple):
    outline: List[Point]
    gear_center: Point
    gear_radius: float
    pen: Point
    outline_width: float
    arm_width: float
    marker_radius: float
    marker_outline_width: float

    @property
    def arm(self) -> Tuple[Point, Point]:
        return self.gear_center, self.pen


def build_guide_overlay(
    config: GearConfig,
    distance: float,
    view_scale: float = 1.0,
    *,
    stroke_width: float = 2.0,
    samples: int = 200,
) -> GuideOverlay:
    """Geometry of the guides for the gear pose at ``distance``.

    Widths and the marker radius are divided by ``view_scale`` so that they
    keep the same on-screen size at any zoom level.
    """

    shape = config.build_shape()
    pose = gear_pose(config, distance, shape)
    inv = 1.0 / view_scale if view_scale > 0 else 1.0
    return GuideOverlay(
        outline=sample_outline(shape, samples),
        gear_center=pose.center,
        gear_radius=pose.radius,
        pen=pose.pen,
        outline_width=OUTLINE_WIDTH * inv,
        arm_width=ARM_WIDTH * inv,
        marker_radius=max(MIN_MARKER_RADIUS, stroke_width / 2.0 + 1.0) * inv,
        marker_outline_width=MARKER_OUTLINE_WIDTH * inv,
    )

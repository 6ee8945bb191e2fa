from __future__ import annotations

import math
from typing import Optional, Tuple

Point = Tuple[float, float]
Size = Tuple[float, float]

MIN_ZOOM = 0.1
MAX_ZOOM = 5.0


def clamp_zoom(zoom: float) -> float:
    if not math.isfinite(zoom):
        return 1.0
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


class ViewTransform:
    """Pan and zoom applied around the viewport centre at draw time.

    Logical coordinates are centred on the viewport midpoint at zoom 1; the
    kinematics never see this transform.
    """

    def __init__(self, zoom: float = 1.0, pan: Point = (0.0, 0.0)) -> None:
        self.zoom = clamp_zoom(zoom)
        self.pan = (float(pan[0]), float(pan[1]))

    @property
    def is_identity(self) -> bool:
        return self.zoom == 1.0 and self.pan == (0.0, 0.0)

    def reset(self) -> None:
        self.zoom = 1.0
        self.pan = (0.0, 0.0)

    def set_zoom(self, zoom: float) -> float:
        self.zoom = clamp_zoom(zoom)
        return self.zoom

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan = (self.pan[0] + dx, self.pan[1] + dy)

    def zoom_by(
        self,
        factor: float,
        anchor: Optional[Point] = None,
        viewport: Optional[Size] = None,
    ) -> float:
        """Multiply the zoom by ``factor``.

        When ``anchor`` (a screen point) and ``viewport`` are given, the
        logical point under the anchor stays under it.
        """
        if factor <= 0 or not math.isfinite(factor):
            return self.zoom
        if anchor is None or viewport is None:
            return self.set_zoom(self.zoom * factor)
        logical = self.to_logical(anchor, viewport)
        self.set_zoom(self.zoom * factor)
        cx, cy = viewport[0] / 2.0, viewport[1] / 2.0
        self.pan = (
            anchor[0] - cx - self.zoom * logical[0],
            anchor[1] - cy - self.zoom * logical[1],
        )
        return self.zoom

    def origin(self, viewport: Size) -> Point:
        """Screen position of the logical origin."""
        return (viewport[0] / 2.0 + self.pan[0], viewport[1] / 2.0 + self.pan[1])

    def to_screen(self, point: Point, viewport: Size) -> Point:
        ox, oy = self.origin(viewport)
        return (ox + self.zoom * point[0], oy + self.zoom * point[1])

    def to_logical(self, point: Point, viewport: Size) -> Point:
        ox, oy = self.origin(viewport)
        return ((point[0] - ox) / self.zoom, (point[1] - oy) / self.zoom)

    def pinch(
        self,
        previous: Tuple[Point, Point],
        current: Tuple[Point, Point],
        viewport: Size,
    ) -> float:
        """Two-finger pinch between two touch frames, given as screen points.

        The zoom follows the ratio of finger spacings and the logical point
        under the previous midpoint moves to the current midpoint.
        """
        before = math.dist(previous[0], previous[1])
        after = math.dist(current[0], current[1])
        if before <= 0 or after <= 0:
            return self.zoom
        mid_before = _midpoint(previous)
        mid_after = _midpoint(current)
        logical = self.to_logical(mid_before, viewport)
        self.set_zoom(self.zoom * after / before)
        cx, cy = viewport[0] / 2.0, viewport[1] / 2.0
        self.pan = (
            mid_after[0] - cx - self.zoom * logical[0],
            mid_after[1] - cy - self.zoom * logical[1],
        )
        return self.zoom


def _midpoint(points: Tuple[Point, Point]) -> Point:
    (ax, ay), (bx, by) = points
    return ((ax + bx) / 2.0, (ay + by) / 2.0)

from __future__ import annotations

from enum import Enum
import math
from typing import Dict, List, NamedTuple, Tuple, Type

Point = Tuple[float, float]

PI = math.pi
TWO_PI = 2.0 * math.pi

# Corner radii as fractions of the fixed-gear scale.
SQUARE_CORNER_RATIO = 0.5
TRIANGLE_CORNER_RATIO = 0.25


class ShapeKind(str, Enum):
    CIRCLE = "CIRCLE"
    SQUARE = "SQUARE"
    TRIANGLE = "TRIANGLE"
    STADIUM = "STADIUM"


class ShapePoint(NamedTuple):
    x: float
    y: float
    normal_angle: float  # outward normal, radians


class ShapePiece(NamedTuple):
    """One straight run or circular arc of an outline.

    Lines start at ``(x, y)`` and head along the unit vector ``(dx, dy)``;
    ``angle`` is their constant outward normal. Arcs are centred at
    ``(x, y)`` and start at polar angle ``angle``, which advances by
    ``turn * t / radius`` along the arc (``turn`` is +1 or -1).
    """

    kind: str
    length: float
    x: float
    y: float
    dx: float = 0.0
    dy: float = 0.0
    radius: float = 0.0
    angle: float = 0.0
    turn: float = 1.0

    def rotated(self, rot: float) -> "ShapePiece":
        cos_a, sin_a = math.cos(rot), math.sin(rot)
        x, y = _rotate(self.x, self.y, cos_a, sin_a)
        dx, dy = _rotate(self.dx, self.dy, cos_a, sin_a)
        return self._replace(x=x, y=y, dx=dx, dy=dy, angle=self.angle + rot)

    def eval(self, t: float) -> "ShapePoint":
        if self.kind == "line":
            return ShapePoint(self.x + self.dx * t, self.y + self.dy * t, self.angle)
        theta = self.angle + self.turn * t / self.radius
        return ShapePoint(
            self.x + self.radius * math.cos(theta),
            self.y + self.radius * math.sin(theta),
            theta,
        )


class ShapeError(ValueError):
    pass


def _rotate(x: float, y: float, cos_a: float, sin_a: float) -> Tuple[float, float]:
    return (x * cos_a - y * sin_a, x * sin_a + y * cos_a)


class BaseShape:
    """Closed outline centred at the origin, parameterised by arc length.

    Subclasses implement ``pieces`` and ``eval``; ``eval`` only ever
    receives a distance already normalised into ``[0, perimeter)``.
    """

    kind: ShapeKind

    def __init__(self, scale: float, elongation: float = 2.0) -> None:
        if not math.isfinite(scale) or scale <= 0:
            raise ShapeError(f"Fixed gear scale must be > 0, got {scale!r}")
        if not math.isfinite(elongation) or elongation < 0:
            raise ShapeError(f"Elongation must be >= 0, got {elongation!r}")
        self.scale = float(scale)
        self.elongation = float(elongation)
        self.perimeter = sum(length for _, length in self.segments())

    def pieces(self) -> List[ShapePiece]:
        raise NotImplementedError

    def segments(self) -> List[Tuple[str, float]]:
        return [(piece.kind, piece.length) for piece in self.pieces()]

    def eval(self, s: float) -> ShapePoint:
        raise NotImplementedError

    def _resolve_s(self, distance: float) -> float:
        s = distance % self.perimeter
        # ``-tiny % p`` rounds to ``p``
        if s >= self.perimeter:
            s = 0.0
        return s

    def point_at(self, distance: float) -> ShapePoint:
        return self.eval(self._resolve_s(distance))


class CircleShape(BaseShape):
    kind = ShapeKind.CIRCLE

    def pieces(self) -> List[ShapePiece]:
        return [ShapePiece("arc", TWO_PI * self.scale, 0.0, 0.0, radius=self.scale)]

    def eval(self, s: float) -> ShapePoint:
        theta = s / self.scale
        return ShapePoint(self.scale * math.cos(theta), self.scale * math.sin(theta), theta)


class _RoundedPolygonShape(BaseShape):
    """Regular polygon with rounded corners, built from congruent sides.

    Each side is a straight run followed by a corner arc; side ``k`` is
    side 0 rotated by ``k * 2*pi/sides`` around the origin.
    """

    sides = 0

    @property
    def corner_radius(self) -> float:
        raise NotImplementedError

    @property
    def straight_length(self) -> float:
        raise NotImplementedError

    @property
    def corner_length(self) -> float:
        return (TWO_PI / self.sides) * self.corner_radius

    def _side_pieces(self) -> Tuple[ShapePiece, ShapePiece]:
        raise NotImplementedError

    def pieces(self) -> List[ShapePiece]:
        line, corner = self._side_pieces()
        out: List[ShapePiece] = []
        for idx in range(self.sides):
            rot = idx * (TWO_PI / self.sides)
            out.append(line.rotated(rot))
            out.append(corner.rotated(rot))
        return out

    def _local(self, local_s: float) -> ShapePoint:
        raise NotImplementedError

    def eval(self, s: float) -> ShapePoint:
        side_total = self.straight_length + self.corner_length
        idx = min(int(s // side_total), self.sides - 1)
        local_s = min(s - idx * side_total, side_total)
        ux, uy, normal = self._local(local_s)
        rot = idx * (TWO_PI / self.sides)
        x, y = _rotate(ux, uy, math.cos(rot), math.sin(rot))
        return ShapePoint(x, y, normal + rot)


class RoundedSquareShape(_RoundedPolygonShape):
    kind = ShapeKind.SQUARE
    sides = 4

    @property
    def corner_radius(self) -> float:
        return self.scale * SQUARE_CORNER_RATIO

    @property
    def straight_length(self) -> float:
        return 2.0 * self.scale - 2.0 * self.corner_radius

    def _side_pieces(self) -> Tuple[ShapePiece, ShapePiece]:
        straight = self.straight_length
        cr = self.corner_radius
        return (
            ShapePiece("line", straight, self.scale, -straight / 2.0, dy=1.0),
            ShapePiece("arc", self.corner_length, self.scale - cr, straight / 2.0, radius=cr),
        )

    def _local(self, local_s: float) -> ShapePoint:
        # side 0: right face, heading +y, then the top-right corner
        straight = self.straight_length
        if local_s < straight:
            return ShapePoint(self.scale, -straight / 2.0 + local_s, 0.0)
        cr = self.corner_radius
        theta = ((local_s - straight) / self.corner_length) * (PI / 2.0)
        cx = self.scale - cr
        cy = straight / 2.0
        return ShapePoint(cx + cr * math.cos(theta), cy + cr * math.sin(theta), theta)


class RoundedTriangleShape(_RoundedPolygonShape):
    kind = ShapeKind.TRIANGLE
    sides = 3

    @property
    def corner_radius(self) -> float:
        return self.scale * TRIANGLE_CORNER_RATIO

    @property
    def apothem(self) -> float:
        return self.scale * 0.5

    @property
    def straight_length(self) -> float:
        sharp_side = self.scale * math.sqrt(3.0)
        cutoff = self.corner_radius * math.sqrt(3.0)
        return sharp_side - 2.0 * cutoff

    def _side_pieces(self) -> Tuple[ShapePiece, ShapePiece]:
        straight = self.straight_length
        cr = self.corner_radius
        return (
            ShapePiece("line", straight, -straight / 2.0, -self.apothem, dx=1.0, angle=-PI / 2.0),
            ShapePiece(
                "arc",
                self.corner_length,
                straight / 2.0,
                -self.apothem + cr,
                radius=cr,
                angle=-PI / 2.0,
            ),
        )

    def _local(self, local_s: float) -> ShapePoint:
        # segment 0: bottom face, heading +x, then the bottom-right corner
        straight = self.straight_length
        if local_s < straight:
            return ShapePoint(-straight / 2.0 + local_s, -self.apothem, -PI / 2.0)
        cr = self.corner_radius
        theta = -PI / 2.0 + ((local_s - straight) / self.corner_length) * (TWO_PI / 3.0)
        cx = straight / 2.0
        cy = -self.apothem + cr
        return ShapePoint(cx + cr * math.cos(theta), cy + cr * math.sin(theta), theta)


class StadiumShape(BaseShape):
    kind = ShapeKind.STADIUM

    @property
    def straight_length(self) -> float:
        return self.scale * self.elongation

    def pieces(self) -> List[ShapePiece]:
        R = self.scale
        straight = self.straight_length
        half = straight / 2.0
        arc = PI * R
        return [
            ShapePiece("line", straight, -half, R, dx=1.0, angle=PI / 2.0),
            ShapePiece("arc", arc, half, 0.0, radius=R, angle=PI / 2.0, turn=-1.0),
            ShapePiece("line", straight, half, -R, dx=-1.0, angle=-PI / 2.0),
            ShapePiece("arc", arc, -half, 0.0, radius=R, angle=-PI / 2.0, turn=-1.0),
        ]

    def eval(self, s: float) -> ShapePoint:
        R = self.scale
        straight = self.straight_length
        half = straight / 2.0
        arc = PI * R

        if s < straight:
            return ShapePoint(-half + s, R, PI / 2.0)
        s -= straight

        if s < arc:
            theta = PI / 2.0 - s / R
            return ShapePoint(half + R * math.cos(theta), R * math.sin(theta), theta)
        s -= arc

        if s < straight:
            return ShapePoint(half - s, -R, -PI / 2.0)
        s -= straight

        if s < arc:
            theta = -PI / 2.0 - s / R
            return ShapePoint(-half + R * math.cos(theta), R * math.sin(theta), theta)

        # rounding leftovers land on the closing point
        return ShapePoint(-half, R, PI / 2.0)


_SHAPES: Dict[ShapeKind, Type[BaseShape]] = {
    ShapeKind.CIRCLE: CircleShape,
    ShapeKind.SQUARE: RoundedSquareShape,
    ShapeKind.TRIANGLE: RoundedTriangleShape,
    ShapeKind.STADIUM: StadiumShape,
}


def get_shape(kind: ShapeKind | str, scale: float, elongation: float = 2.0) -> BaseShape:
    try:
        shape_cls = _SHAPES[ShapeKind(kind)]
    except ValueError as exc:
        raise ShapeError(f"Unknown shape: {kind!r}") from exc
    return shape_cls(scale, elongation)


def shape_perimeter(kind: ShapeKind | str, scale: float, elongation: float = 2.0) -> float:
    return get_shape(kind, scale, elongation).perimeter


def shape_point(
    kind: ShapeKind | str,
    scale: float,
    elongation: float,
    distance: float,
) -> ShapePoint:
    return get_shape(kind, scale, elongation).point_at(distance)


def sample_outline(shape: BaseShape, samples: int = 200) -> List[Point]:
    """Sample the outline at ``perimeter / samples`` arc-length steps.

    The first point is not repeated at the end; callers draw the result as
    a closed polygon.
    """

    samples = max(3, int(samples))
    step = shape.perimeter / samples
    pts: List[Point] = []
    for i in range(samples):
        p = shape.point_at(i * step)
        pts.append((p.x, p.y))
    return pts


def wheel_center(point: ShapePoint, r: float, side: int) -> Point:
    """Centre of a wheel of radius ``r`` touching the outline at ``point``.

    ``side`` is -1 for a wheel inside the fixed gear, +1 outside.
    """

    return (
        point.x + side * r * math.cos(point.normal_angle),
        point.y + side * r * math.sin(point.normal_angle),
    )


def pen_position(
    point: ShapePoint,
    s: float,
    r: float,
    d: float,
    side: int,
    alpha0: float,
    epsilon: int,
) -> Point:
    cx, cy = wheel_center(point, r, side)
    angle = point.normal_angle + alpha0 + epsilon * (s / r)
    return cx + d * math.cos(angle), cy + d * math.sin(angle)

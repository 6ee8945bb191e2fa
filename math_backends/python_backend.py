from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence, Tuple

from shape_geometry import pen_position

if TYPE_CHECKING:
    from spirotrace_math import GearConfig

Point = Tuple[float, float]


def generate_pen_points(config: "GearConfig", distances: Sequence[float]) -> List[Point]:
    """
    Positions du stylo pour chaque distance roulée, dans l'ordre fourni.

    Les distances ne sont jamais réduites modulo le périmètre : seule la
    recherche du point de contact l'est, la rotation du stylo reste continue.
    """
    shape = config.build_shape()
    r = config.moving_radius
    d = config.pen_offset
    side = config.side
    alpha0 = config.contact_offset
    epsilon = config.rotation_sign

    points: List[Point] = []
    for s in distances:
        s = float(s)
        points.append(pen_position(shape.point_at(s), s, r, d, side, alpha0, epsilon))
    return points

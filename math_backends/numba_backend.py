from __future__ import annotations

import importlib.util
import math
from typing import TYPE_CHECKING, List, Sequence, Tuple

from math_backends import python_backend
from shape_geometry import BaseShape

if TYPE_CHECKING:
    from spirotrace_math import GearConfig

Point = Tuple[float, float]

NUMBA_AVAILABLE = importlib.util.find_spec("numba") is not None
if NUMBA_AVAILABLE:
    import numba
    import numpy as np

_PIECE_LINE = 0
_PIECE_ARC = 1


def _numba_piece_data(shape: BaseShape):
    """Encode the outline pieces as flat arrays for the jitted kernel."""
    pieces = shape.pieces()
    count = len(pieces)
    piece_ends = np.empty(count, dtype=np.float64)
    piece_kind = np.empty(count, dtype=np.int64)
    origin_x = np.empty(count, dtype=np.float64)
    origin_y = np.empty(count, dtype=np.float64)
    dir_x = np.empty(count, dtype=np.float64)
    dir_y = np.empty(count, dtype=np.float64)
    radius = np.empty(count, dtype=np.float64)
    angle = np.empty(count, dtype=np.float64)
    turn = np.empty(count, dtype=np.float64)
    total = 0.0
    for idx, piece in enumerate(pieces):
        total += piece.length
        piece_ends[idx] = total
        piece_kind[idx] = _PIECE_LINE if piece.kind == "line" else _PIECE_ARC
        origin_x[idx] = piece.x
        origin_y[idx] = piece.y
        dir_x[idx] = piece.dx
        dir_y[idx] = piece.dy
        radius[idx] = piece.radius
        angle[idx] = piece.angle
        turn[idx] = piece.turn
    return (
        float(shape.perimeter),
        piece_ends,
        piece_kind,
        origin_x,
        origin_y,
        dir_x,
        dir_y,
        radius,
        angle,
        turn,
    )


if NUMBA_AVAILABLE:

    @numba.njit(cache=True)
    def _pen_positions_numba(
        s_values: np.ndarray,
        perimeter: float,
        piece_ends: np.ndarray,
        piece_kind: np.ndarray,
        origin_x: np.ndarray,
        origin_y: np.ndarray,
        dir_x: np.ndarray,
        dir_y: np.ndarray,
        radius: np.ndarray,
        angle: np.ndarray,
        turn: np.ndarray,
        r: float,
        d: float,
        side: int,
        alpha0: float,
        epsilon: int,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = len(s_values)
        count = len(piece_ends)
        out_x = np.empty(n, dtype=np.float64)
        out_y = np.empty(n, dtype=np.float64)
        for i in range(n):
            s = s_values[i]
            local = s - perimeter * math.floor(s / perimeter)
            if local < 0.0 or local >= perimeter:
                local = 0.0

            j = count - 1
            for k in range(count):
                if local < piece_ends[k]:
                    j = k
                    break
            start = piece_ends[j - 1] if j > 0 else 0.0
            t = local - start

            if piece_kind[j] == _PIECE_LINE:
                xb = origin_x[j] + dir_x[j] * t
                yb = origin_y[j] + dir_y[j] * t
                normal = angle[j]
            else:
                normal = angle[j] + turn[j] * t / radius[j]
                xb = origin_x[j] + radius[j] * math.cos(normal)
                yb = origin_y[j] + radius[j] * math.sin(normal)

            cx = xb + side * r * math.cos(normal)
            cy = yb + side * r * math.sin(normal)
            pen_angle = normal + alpha0 + epsilon * s / r
            out_x[i] = cx + d * math.cos(pen_angle)
            out_y[i] = cy + d * math.sin(pen_angle)
        return out_x, out_y


def generate_pen_points(config: "GearConfig", distances: Sequence[float]) -> List[Point]:
    if not NUMBA_AVAILABLE or len(distances) == 0:
        return python_backend.generate_pen_points(config, distances)

    s_values = np.asarray(distances, dtype=np.float64)
    px, py = _pen_positions_numba(
        s_values,
        *_numba_piece_data(config.build_shape()),
        float(config.moving_radius),
        float(config.pen_offset),
        int(config.side),
        float(config.contact_offset),
        int(config.rotation_sign),
    )
    return [(float(x), float(y)) for x, y in zip(px, py)]

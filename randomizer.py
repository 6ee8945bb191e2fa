from __future__ import annotations

import random
from typing import Optional

from shape_geometry import ShapeKind
from spirotrace_math import OrbitMode, SpiroParams

FIXED_SCALE_RANGE = (60, 140)
MOVING_RADIUS_RANGE = (10, 90)
PEN_OFFSET_RANGE = (10, 100)
ELONGATION_RANGE = (0.5, 3.0)
DEFAULT_ELONGATION = 2.0


def random_color(rng: random.Random) -> str:
    return "#{:06x}".format(rng.randrange(0x1000000))


def generate_random_params(
    base: Optional[SpiroParams] = None,
    rng: Optional[random.Random] = None,
) -> SpiroParams:
    """Random geometry, colour, shape and orbit mode on top of ``base``.

    Speed, stroke width and reverse rotation are kept from ``base``.
    """
    rng = rng or random.Random()
    base = base or SpiroParams()

    shape = rng.choice(list(ShapeKind))
    mode = rng.choice(list(OrbitMode))
    color = random_color(rng)
    if shape == ShapeKind.STADIUM:
        elongation = rng.uniform(*ELONGATION_RANGE)
    else:
        elongation = DEFAULT_ELONGATION

    return base.with_changes(
        fixed_scale=float(rng.randint(*FIXED_SCALE_RANGE)),
        moving_radius=float(rng.randint(*MOVING_RADIUS_RANGE)),
        pen_offset=float(rng.randint(*PEN_OFFSET_RANGE)),
        color=color,
        orbit_mode=mode,
        shape=shape,
        elongation=elongation,
    )

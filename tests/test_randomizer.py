import random

from colors import HEX_RE
from randomizer import generate_random_params
from shape_geometry import ShapeKind
from spirotrace_math import SpiroParams, validate_params


def test_random_params_stay_in_range():
    rng = random.Random(1234)
    base = SpiroParams(speed=12.0, stroke_width=4.5, reverse_rotation=True)
    for _ in range(200):
        params = generate_random_params(base, rng)
        assert 60 <= params.fixed_scale <= 140
        assert 10 <= params.moving_radius <= 90
        assert 10 <= params.pen_offset <= 100
        assert params.fixed_scale.is_integer()
        assert HEX_RE.fullmatch(params.color) and params.color.startswith("#")
        if params.shape == ShapeKind.STADIUM:
            assert 0.5 <= params.elongation <= 3.0
        else:
            assert params.elongation == 2.0
        assert (params.speed, params.stroke_width, params.reverse_rotation) == (12.0, 4.5, True)
        validate_params(params)


def test_seeded_generation_is_reproducible():
    assert generate_random_params(rng=random.Random(7)) == generate_random_params(rng=random.Random(7))

import importlib.util
import math

import pytest

import spirotrace_math
from math_backends import numba_backend, python_backend
from shape_geometry import ShapeKind
from spirotrace_math import (
    GearConfig,
    OrbitMode,
    generate_pen_points,
    get_backend_name,
    list_backends,
    pen_tip,
    set_backend,
)


@pytest.fixture
def restore_backend():
    previous = get_backend_name()
    yield
    set_backend(previous)


def test_numba_backend_availability():
    backends = list_backends(available_only=True)
    names = {backend.name for backend in backends}
    assert "python" in names

    numba_available = importlib.util.find_spec("numba") is not None
    if numba_available:
        assert "numba" in names
    else:
        assert "numba" not in names


def test_unknown_backend_is_rejected(restore_backend):
    with pytest.raises(ValueError):
        set_backend("fortran")
    assert get_backend_name() in {b.name for b in list_backends()}


def test_python_backend_matches_pen_tip():
    config = GearConfig(shape=ShapeKind.SQUARE, orbit_mode=OrbitMode.OUTER)
    distances = [0.0, 2.0, 4.0, 1000.0]
    points = python_backend.generate_pen_points(config, distances)
    for s, (x, y) in zip(distances, points):
        ex, ey = pen_tip(config, s)
        assert math.isclose(x, ex, abs_tol=1e-9)
        assert math.isclose(y, ey, abs_tol=1e-9)


def test_backends_agree():
    config = GearConfig(shape=ShapeKind.STADIUM, elongation=2.5, moving_radius=17.0)
    distances = [i * 2.0 for i in range(300)]
    ref = python_backend.generate_pen_points(config, distances)
    got = numba_backend.generate_pen_points(config, distances)
    assert len(got) == len(ref)
    for (x0, y0), (x1, y1) in zip(ref, got):
        assert math.isclose(x0, x1, abs_tol=1e-9)
        assert math.isclose(y0, y1, abs_tol=1e-9)


def test_active_backend_is_used(restore_backend):
    set_backend("python")
    config = GearConfig()
    assert generate_pen_points(config, [0.0]) == [pen_tip(config, 0.0)]
    assert spirotrace_math.get_backend_name() == "python"


@pytest.mark.parametrize("kind", list(ShapeKind))
@pytest.mark.parametrize("mode", list(OrbitMode))
def test_numba_kernel_matches_python_on_every_shape(kind, mode):
    pytest.importorskip("numba")
    config = GearConfig(
        shape=kind,
        orbit_mode=mode,
        elongation=0.0 if kind == ShapeKind.STADIUM else 2.0,
        moving_radius=23.0,
        pen_offset=31.0,
        reverse_rotation=mode == OrbitMode.INNER,
    )
    distances = [-50.0, 0.0, 1.0, 777.7] + [i * 7.3 for i in range(400)]
    ref = python_backend.generate_pen_points(config, distances)
    got = numba_backend.generate_pen_points(config, distances)
    for (x0, y0), (x1, y1) in zip(ref, got):
        assert math.isclose(x0, x1, abs_tol=1e-6)
        assert math.isclose(y0, y1, abs_tol=1e-6)

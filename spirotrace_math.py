from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
import math
from typing import Callable, List, NamedTuple, Sequence, Tuple

from colors import normalize_color_string
from shape_geometry import (
    BaseShape,
    ShapeError,
    ShapeKind,
    ShapePoint,
    get_shape,
    pen_position,
    shape_perimeter,
    shape_point,
    wheel_center,
)

Point = Tuple[float, float]
_LOGGER = logging.getLogger(__name__)

# Arc length rolled per kinematic step.
STEP_LENGTH = 2.0

MAX_DIMENSION = 1.0e6
# keeps ``distance / moving_radius`` finite for any reachable distance
MIN_MOVING_RADIUS = 1.0e-6
MAX_ELONGATION = 100.0
MAX_SPEED = 1000.0
MAX_STROKE_WIDTH = 100.0

# field -> (lower bound, lower bound inclusive, upper bound)
PARAM_BOUNDS = {
    "fixed_scale": (0.0, False, MAX_DIMENSION),
    "moving_radius": (MIN_MOVING_RADIUS, True, MAX_DIMENSION),
    "pen_offset": (0.0, True, MAX_DIMENSION),
    "elongation": (0.0, True, MAX_ELONGATION),
    "speed": (0.0, True, MAX_SPEED),
    "stroke_width": (0.0, False, MAX_STROKE_WIDTH),
}


def in_bounds(field: str, value: float) -> bool:
    """True when ``value`` is a finite number inside ``PARAM_BOUNDS[field]``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        value = float(value)
    except OverflowError:
        return False
    if not math.isfinite(value):
        return False
    lower, inclusive, upper = PARAM_BOUNDS[field]
    if value < lower or (value == lower and not inclusive):
        return False
    return value <= upper


class OrbitMode(str, Enum):
    INNER = "INNER"  # hypocycloid
    OUTER = "OUTER"  # epicycloid


class ConfigError(ValueError):
    """A configuration the engine refuses to simulate."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class InvalidConfigurationError(ConfigError):
    pass


class DegenerateShapeError(ConfigError):
    pass


def _check_finite(field: str, value: float) -> None:
    try:
        finite = (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    except OverflowError:
        finite = False
    if not finite:
        raise InvalidConfigurationError(field, f"{field} must be a finite number, got {value!r}")


def _check_bounds(field: str, value: float, error: type) -> None:
    if not in_bounds(field, value):
        lower, inclusive, upper = PARAM_BOUNDS[field]
        low = "[" if inclusive else "("
        raise error(field, f"{field} must be in {low}{lower:g}, {upper:g}], got {value!r}")


@dataclass(frozen=True)
class GearConfig:
    fixed_scale: float = 120.0      # R : rayon / taille de l'engrenage fixe
    moving_radius: float = 35.0     # r : rayon de la roue mobile
    pen_offset: float = 60.0        # d : distance centre de la roue -> stylo
    orbit_mode: OrbitMode = OrbitMode.INNER
    shape: ShapeKind = ShapeKind.CIRCLE
    elongation: float = 2.0
    reverse_rotation: bool = False

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "orbit_mode", OrbitMode(self.orbit_mode))
        except ValueError as exc:
            raise InvalidConfigurationError("orbit_mode", str(exc)) from exc
        try:
            object.__setattr__(self, "shape", ShapeKind(self.shape))
        except ValueError as exc:
            raise DegenerateShapeError("shape", str(exc)) from exc
        validate_gear_config(self)

    @property
    def side(self) -> int:
        return 1 if self.orbit_mode == OrbitMode.OUTER else -1

    @property
    def contact_offset(self) -> float:
        return math.pi if self.orbit_mode == OrbitMode.OUTER else 0.0

    @property
    def rotation_sign(self) -> int:
        return rotation_sign(self.orbit_mode, self.reverse_rotation)

    def build_shape(self) -> BaseShape:
        return get_shape(self.shape, self.fixed_scale, self.elongation)


@dataclass(frozen=True)
class PenStyle:
    color: str = "#00ffff"
    stroke_width: float = 2.0


@dataclass(frozen=True)
class SpiroParams:
    """Full parameter set edited by the control panel."""

    fixed_scale: float = 120.0
    moving_radius: float = 35.0
    pen_offset: float = 60.0
    color: str = "#00ffff"
    speed: float = 5.0
    orbit_mode: OrbitMode = OrbitMode.INNER
    shape: ShapeKind = ShapeKind.CIRCLE
    stroke_width: float = 2.0
    elongation: float = 2.0
    reverse_rotation: bool = False

    def gear_config(self) -> GearConfig:
        return GearConfig(
            fixed_scale=self.fixed_scale,
            moving_radius=self.moving_radius,
            pen_offset=self.pen_offset,
            orbit_mode=self.orbit_mode,
            shape=self.shape,
            elongation=self.elongation,
            reverse_rotation=self.reverse_rotation,
        )

    def pen_style(self) -> PenStyle:
        return PenStyle(color=self.color, stroke_width=self.stroke_width)

    def with_changes(self, **changes) -> "SpiroParams":
        return replace(self, **changes)


def validate_gear_config(config: GearConfig) -> None:
    """
    Refuse les configurations qui produiraient une division par zéro, un
    périmètre nul ou des positions non finies. Appelée à l'acceptation de
    la configuration, jamais dans la boucle de pas.
    """
    for name in ("fixed_scale", "moving_radius", "pen_offset", "elongation"):
        _check_finite(name, getattr(config, name))
    _check_bounds("moving_radius", config.moving_radius, InvalidConfigurationError)
    _check_bounds("pen_offset", config.pen_offset, InvalidConfigurationError)
    _check_bounds("fixed_scale", config.fixed_scale, DegenerateShapeError)
    _check_bounds("elongation", config.elongation, DegenerateShapeError)
    try:
        perimeter = shape_perimeter(config.shape, config.fixed_scale, config.elongation)
    except ShapeError as exc:
        raise DegenerateShapeError("shape", str(exc)) from exc
    if not math.isfinite(perimeter) or perimeter <= 0:
        raise DegenerateShapeError("shape", f"Perimeter must be finite and > 0, got {perimeter!r}")


def validate_params(params: SpiroParams) -> GearConfig:
    """Validate the full parameter set and return its gear configuration."""
    config = params.gear_config()
    _check_finite("speed", params.speed)
    _check_finite("stroke_width", params.stroke_width)
    _check_bounds("speed", params.speed, InvalidConfigurationError)
    _check_bounds("stroke_width", params.stroke_width, InvalidConfigurationError)
    if normalize_color_string(params.color) is None:
        raise InvalidConfigurationError("color", f"Invalid colour: {params.color!r}")
    return config


def rotation_sign(orbit_mode: OrbitMode, reverse_rotation: bool = False) -> int:
    """
    Sens de rotation du stylo :
      - dedans (INNER) : -1, la roue tourne en sens inverse de son orbite
      - dehors (OUTER) : +1
    ``reverse_rotation`` inverse ce sens.
    """
    base = 1 if OrbitMode(orbit_mode) == OrbitMode.OUTER else -1
    return -base if reverse_rotation else base


def steps_for_speed(speed: float) -> int:
    if not math.isfinite(speed) or speed <= 0:
        return 0
    return int(math.ceil(speed))


class GearPose(NamedTuple):
    distance: float
    contact: ShapePoint
    center: Point
    radius: float
    contact_angle: float
    pen_angle: float
    pen: Point


def gear_pose(config: GearConfig, distance: float, shape: BaseShape | None = None) -> GearPose:
    if shape is None:
        shape = config.build_shape()
    point = shape.point_at(distance)
    center = wheel_center(point, config.moving_radius, config.side)
    contact_angle = point.normal_angle + config.contact_offset
    pen_angle = contact_angle + config.rotation_sign * (distance / config.moving_radius)
    pen = (
        center[0] + config.pen_offset * math.cos(pen_angle),
        center[1] + config.pen_offset * math.sin(pen_angle),
    )
    return GearPose(distance, point, center, config.moving_radius, contact_angle, pen_angle, pen)


def pen_tip(config: GearConfig, distance: float, shape: BaseShape | None = None) -> Point:
    if shape is None:
        shape = config.build_shape()
    return pen_position(
        shape.point_at(distance),
        distance,
        config.moving_radius,
        config.pen_offset,
        config.side,
        config.contact_offset,
        config.rotation_sign,
    )


@dataclass(frozen=True)
class MathBackend:
    name: str
    label: str
    available: bool
    generator: Callable[[GearConfig, Sequence[float]], List[Point]]


_BACKENDS: dict[str, MathBackend] = {}
_ACTIVE_BACKEND = "python"


def register_backend(backend: MathBackend) -> None:
    _BACKENDS[backend.name] = backend


def list_backends(*, available_only: bool = False) -> list[MathBackend]:
    backends = list(_BACKENDS.values())
    if available_only:
        backends = [b for b in backends if b.available]
    return sorted(backends, key=lambda b: b.name)


def get_backend_name() -> str:
    return _ACTIVE_BACKEND


def set_backend(name: str) -> None:
    backend = _BACKENDS.get(name)
    if backend is None:
        raise ValueError(f"Unknown math backend: {name}")
    if not backend.available:
        raise ValueError(f"Math backend not available: {name}")
    global _ACTIVE_BACKEND
    _ACTIVE_BACKEND = backend.name
    _LOGGER.info("Math backend set to %s", backend.label)


def generate_pen_points(config: GearConfig, distances: Sequence[float]) -> List[Point]:
    backend = _BACKENDS.get(_ACTIVE_BACKEND)
    if backend is None:
        raise ValueError(f"Unknown math backend: {_ACTIVE_BACKEND}")
    return backend.generator(config, distances)


def _register_builtin_backends() -> None:
    from math_backends import numba_backend, python_backend

    register_backend(
        MathBackend(
            name="python",
            label="Python",
            available=True,
            generator=python_backend.generate_pen_points,
        )
    )
    register_backend(
        MathBackend(
            name="numba",
            label="Numba",
            available=numba_backend.NUMBA_AVAILABLE,
            generator=numba_backend.generate_pen_points,
        )
    )


_register_builtin_backends()


__all__ = [
    "ConfigError",
    "DegenerateShapeError",
    "GearConfig",
    "GearPose",
    "InvalidConfigurationError",
    "MathBackend",
    "OrbitMode",
    "PARAM_BOUNDS",
    "PenStyle",
    "STEP_LENGTH",
    "ShapeKind",
    "SpiroParams",
    "gear_pose",
    "in_bounds",
    "generate_pen_points",
    "get_backend_name",
    "list_backends",
    "pen_tip",
    "register_backend",
    "rotation_sign",
    "set_backend",
    "shape_point",
    "steps_for_speed",
    "validate_gear_config",
    "validate_params",
]

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import random
from typing import List, Optional, Tuple

from guide_overlay import GuideOverlay, build_guide_overlay
from randomizer import generate_random_params
from spirotrace_math import (
    STEP_LENGTH,
    ConfigError,
    GearConfig,
    GearPose,
    PenStyle,
    SpiroParams,
    gear_pose,
    generate_pen_points,
    steps_for_speed,
    validate_params,
)
from url_params import parse_params, serialize_params
from view_transform import ViewTransform

Point = Tuple[float, float]
_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollingState:
    accumulated_distance: float = 0.0


@dataclass(frozen=True)
class TraceSegment:
    start: Point
    end: Point
    style: PenStyle


def _check_step_length(step_length: float) -> None:
    if not math.isfinite(step_length) or step_length <= 0:
        raise ValueError(f"Step length must be a positive finite number, got {step_length!r}")


class TraceAccumulator:
    """Persistent trace layer plus the rolling distance that produced it.

    Segments are only ever appended in increasing distance order, and only
    :meth:`clear` removes them.
    """

    def __init__(self) -> None:
        self._segments: List[TraceSegment] = []
        self._state = RollingState()
        self._generation = 0

    @property
    def state(self) -> RollingState:
        return self._state

    @property
    def distance(self) -> float:
        return self._state.accumulated_distance

    @property
    def generation(self) -> int:
        """Bumped by every :meth:`clear`."""
        return self._generation

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    def append_step(
        self,
        config: GearConfig,
        step_length: float = STEP_LENGTH,
        style: Optional[PenStyle] = None,
    ) -> TraceSegment:
        return self.advance(config, 1, step_length, style)[0]

    def advance(
        self,
        config: GearConfig,
        steps: int,
        step_length: float = STEP_LENGTH,
        style: Optional[PenStyle] = None,
    ) -> List[TraceSegment]:
        """Roll ``steps`` times and append one segment per step.

        The first segment starts at the pen tip for the current distance, so
        consecutive frames join without a gap.
        """
        _check_step_length(step_length)
        if steps <= 0:
            return []
        if style is None:
            style = PenStyle()

        start = self._state.accumulated_distance
        distances = [start + i * step_length for i in range(steps + 1)]
        points = generate_pen_points(config, distances)

        added = [
            TraceSegment(points[i], points[i + 1], style)
            for i in range(steps)
        ]
        self._segments.extend(added)
        self._state = RollingState(distances[-1])
        return added

    def clear(self) -> None:
        self._segments.clear()
        self._state = RollingState()
        self._generation += 1

    def snapshot(self, start: int = 0) -> Tuple[TraceSegment, ...]:
        return tuple(self._segments[start:])


class SpiroSession:
    """State driven by the frame clock: params, trace, view and play flags."""

    def __init__(self, params: Optional[SpiroParams] = None) -> None:
        params = params or SpiroParams()
        self._config = validate_params(params)
        self._params = params
        self.trace = TraceAccumulator()
        self.view = ViewTransform()
        self.auto_playing = False
        self.push_playing = False
        self.show_guides = True

    @property
    def params(self) -> SpiroParams:
        return self._params

    @property
    def config(self) -> GearConfig:
        return self._config

    @property
    def is_playing(self) -> bool:
        return self.auto_playing or self.push_playing

    def set_params(self, params: SpiroParams) -> SpiroParams:
        """Accept ``params`` if they describe a valid gear configuration.

        Raises :class:`ConfigError` and keeps the previous params otherwise.
        """
        config = validate_params(params)
        self._params = params
        self._config = config
        return params

    def update_params(self, **changes) -> SpiroParams:
        return self.set_params(self._params.with_changes(**changes))

    def try_update_params(self, **changes) -> Optional[ConfigError]:
        try:
            self.update_params(**changes)
        except ConfigError as exc:
            _LOGGER.warning("Rejected parameter change %s: %s", changes, exc)
            return exc
        return None

    # ----- Lecture -----

    def tick(self) -> int:
        """Run one frame; returns the number of segments appended."""
        if not self.is_playing:
            return 0
        steps = steps_for_speed(self._params.speed)
        added = self.trace.advance(self._config, steps, STEP_LENGTH, self._params.pen_style())
        return len(added)

    def start_auto(self) -> None:
        self.auto_playing = True

    def stop_auto(self) -> None:
        self.auto_playing = False
        self.push_playing = False

    def toggle_auto(self) -> bool:
        if self.auto_playing:
            self.stop_auto()
        else:
            self.start_auto()
        return self.auto_playing

    def push_start(self) -> None:
        if not self.auto_playing:
            self.push_playing = True

    def push_end(self) -> None:
        self.push_playing = False

    def clear(self) -> None:
        self.trace.clear()
        self.auto_playing = False
        _LOGGER.debug("Trace cleared")

    # ----- Rendu -----

    def pose(self) -> GearPose:
        return gear_pose(self._config, self.trace.distance)

    def overlay(self) -> Optional[GuideOverlay]:
        if not self.show_guides:
            return None
        return build_guide_overlay(
            self._config,
            self.trace.distance,
            self.view.zoom,
            stroke_width=self._params.stroke_width,
        )

    # ----- Collaborateurs -----

    def randomize(self, rng: Optional[random.Random] = None) -> SpiroParams:
        return self.set_params(generate_random_params(self._params, rng))

    def apply_query(self, query: str) -> SpiroParams:
        changes = parse_params(query)
        try:
            return self.update_params(**changes)
        except ConfigError as exc:
            _LOGGER.warning("Ignoring shared parameters %r: %s", query, exc)
            return self._params

    def share_query(self) -> str:
        return serialize_params(self._params)

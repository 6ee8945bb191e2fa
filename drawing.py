from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPainterPath, QPen, QPolygonF

from guide_overlay import GuideOverlay
from spirotrace_core import TraceAccumulator, TraceSegment
from spirotrace_math import PenStyle
from view_transform import ViewTransform

Point = Tuple[float, float]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Theme:
    background: str
    fixed_gear: QColor
    moving_gear: QColor
    arm: QColor
    marker_outline: str


DARK_THEME = Theme(
    background="#030712",
    fixed_gear=QColor(255, 255, 255, 51),
    moving_gear=QColor(100, 200, 255, 102),
    arm=QColor(255, 0, 0, 128),
    marker_outline="#000000",
)
LIGHT_THEME = Theme(
    background="#f9fafb",
    fixed_gear=QColor(0, 0, 0, 38),
    moving_gear=QColor(0, 100, 200, 77),
    arm=QColor(255, 0, 0, 128),
    marker_outline="#ffffff",
)


def theme_for(dark_mode: bool) -> Theme:
    return DARK_THEME if dark_mode else LIGHT_THEME


def _map_points(points: Iterable[Point]) -> List[QPointF]:
    return [QPointF(x, y) for (x, y) in points]


def _pen(color, width: float, *, round_caps: bool = False) -> QPen:
    pen = QPen(QColor(color))
    pen.setWidthF(width)
    if round_caps:
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
    return pen


def draw_polyline(
    painter: QPainter,
    points: Sequence[Point],
    *,
    color="#606060",
    width: float = 0.0,
    closed: bool = False,
) -> None:
    """Draw a polyline, or a closed outline when ``closed`` is set."""

    if len(points) < 2:
        return
    painter.setPen(_pen(color, width))
    painter.setBrush(Qt.NoBrush)
    if closed:
        painter.drawPolygon(QPolygonF(_map_points(points)))
    else:
        painter.drawPolyline(_map_points(points))


def draw_marker(
    painter: QPainter,
    point: Point,
    *,
    radius: float,
    fill: str,
    outline: str,
    outline_width: float,
) -> None:
    """Filled disc with a thin contrasting outline."""

    painter.setPen(_pen(outline, outline_width))
    painter.setBrush(QColor(fill))
    painter.drawEllipse(QPointF(point[0], point[1]), radius, radius)
    painter.setBrush(Qt.NoBrush)


def draw_wheel(
    painter: QPainter,
    *,
    center: Point,
    radius: float,
    color,
    width: float,
) -> None:
    painter.setPen(_pen(color, width))
    painter.setBrush(Qt.NoBrush)
    painter.drawEllipse(QPointF(center[0], center[1]), radius, radius)


def draw_guide_overlay(
    painter: QPainter,
    overlay: GuideOverlay,
    *,
    pen_color: str,
    theme: Theme,
) -> None:
    """Fixed gear outline, moving gear, arm and pen tip. Never touches the trace."""

    draw_polyline(
        painter,
        overlay.outline,
        color=theme.fixed_gear,
        width=overlay.outline_width,
        closed=True,
    )
    draw_wheel(
        painter,
        center=overlay.gear_center,
        radius=overlay.gear_radius,
        color=theme.moving_gear,
        width=overlay.outline_width,
    )
    draw_polyline(painter, list(overlay.arm), color=theme.arm, width=overlay.arm_width)
    draw_marker(
        painter,
        overlay.pen,
        radius=overlay.marker_radius,
        fill=pen_color,
        outline=theme.marker_outline,
        outline_width=overlay.marker_outline_width,
    )


def build_trace_paths(
    segments: Sequence[TraceSegment],
    runs: Optional[List[Tuple[PenStyle, QPainterPath]]] = None,
) -> List[Tuple[PenStyle, QPainterPath]]:
    """Group connected segments sharing a style into painter paths.

    ``runs`` is extended in place so that new segments continue the last
    run when they join it.
    """

    runs = [] if runs is None else runs
    for seg in segments:
        if runs and runs[-1][0] == seg.style:
            path = runs[-1][1]
            last = path.currentPosition()
            if (last.x(), last.y()) != seg.start:
                path.moveTo(seg.start[0], seg.start[1])
        else:
            path = QPainterPath()
            path.moveTo(seg.start[0], seg.start[1])
            runs.append((seg.style, path))
        path.lineTo(seg.end[0], seg.end[1])
    return runs


class TraceLayer:
    """Raster cache of the accumulated trace in logical coordinates.

    New segments are stroked into the cached image as they arrive. The image
    is rebuilt from the whole trace only after a clear, when the trace leaves
    the cached area, or when the requested pixel scale moves past
    ``RESCALE_THRESHOLD`` from the one it was rendered at.
    """

    RESCALE_THRESHOLD = 1.5
    MAX_IMAGE_SIDE = 4096
    MIN_MARGIN = 32.0

    def __init__(self) -> None:
        self._image: Optional[QImage] = None
        self._rect = QRectF()
        self._scale = 1.0
        self._requested_scale = 1.0
        self._bounds: Optional[QRectF] = None
        self._baked = 0
        self._generation = -1
        self.rebuild_count = 0

    @property
    def baked(self) -> int:
        """Number of trace segments already rendered into the image."""
        return self._baked

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def rect(self) -> QRectF:
        return QRectF(self._rect)

    def sync(self, trace: TraceAccumulator, scale: float = 1.0) -> None:
        """Bring the cache up to date; ``scale`` is device pixels per logical unit."""

        if trace.generation != self._generation or trace.segment_count < self._baked:
            self._generation = trace.generation
            self._image = None
            self._bounds = None
            self._baked = 0
        new = trace.snapshot(self._baked)
        if not new and self._image is None:
            return
        for seg in new:
            self._extend_bounds(seg)
        self._baked += len(new)

        if self._needs_rebuild(scale):
            self._rebuild(trace, scale)
        elif new:
            self._stroke(build_trace_paths(new))

    def draw(self, painter: QPainter) -> None:
        if self._image is None:
            return
        painter.save()
        painter.setRenderHint(QPainter.SmoothPixmapTransform, True)
        painter.drawImage(self._rect, self._image, QRectF(self._image.rect()))
        painter.restore()

    def _extend_bounds(self, seg: TraceSegment) -> None:
        pad = seg.style.stroke_width / 2.0 + 1.0
        for x, y in (seg.start, seg.end):
            box = QRectF(x - pad, y - pad, 2.0 * pad, 2.0 * pad)
            self._bounds = box if self._bounds is None else self._bounds.united(box)

    def _needs_rebuild(self, scale: float) -> bool:
        if self._bounds is None:
            return False
        if self._image is None or not self._rect.contains(self._bounds):
            return True
        ratio = scale / self._requested_scale
        return not (1.0 / self.RESCALE_THRESHOLD <= ratio <= self.RESCALE_THRESHOLD)

    def _rebuild(self, trace: TraceAccumulator, scale: float) -> None:
        bounds = self._bounds
        margin = max(self.MIN_MARGIN, 0.25 * max(bounds.width(), bounds.height()))
        self._rect = bounds.adjusted(-margin, -margin, margin, margin)
        largest = max(self._rect.width(), self._rect.height())
        self._requested_scale = scale
        self._scale = min(scale, self.MAX_IMAGE_SIDE / largest)
        width = max(1, math.ceil(self._rect.width() * self._scale))
        height = max(1, math.ceil(self._rect.height() * self._scale))
        self._image = QImage(width, height, QImage.Format_ARGB32_Premultiplied)
        self._image.fill(Qt.transparent)
        self._stroke(build_trace_paths(trace.snapshot()))
        self.rebuild_count += 1
        _LOGGER.debug(
            "Trace cache rebuilt: %dx%d px at scale %.3f", width, height, self._scale
        )

    def _stroke(self, runs: List[Tuple[PenStyle, QPainterPath]]) -> None:
        painter = QPainter(self._image)
        try:
            painter.setRenderHint(QPainter.Antialiasing, True)
            painter.scale(self._scale, self._scale)
            painter.translate(-self._rect.left(), -self._rect.top())
            painter.setBrush(Qt.NoBrush)
            for style, path in runs:
                painter.setPen(_pen(style.color, style.stroke_width, round_caps=True))
                painter.drawPath(path)
        finally:
            painter.end()


def composite(
    painter: QPainter,
    *,
    layer: TraceLayer,
    overlay: Optional[GuideOverlay],
    view: ViewTransform,
    viewport: Tuple[float, float],
    pen_color: str,
    theme: Theme,
) -> None:
    """Paint background, trace and guides under the pan/zoom transform."""

    painter.fillRect(0, 0, int(viewport[0]), int(viewport[1]), QColor(theme.background))
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.save()
    ox, oy = view.origin(viewport)
    painter.translate(ox, oy)
    painter.scale(view.zoom, view.zoom)
    layer.draw(painter)
    if overlay is not None:
        draw_guide_overlay(painter, overlay, pen_color=pen_color, theme=theme)
    painter.restore()

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtGui = pytest.importorskip("PySide6.QtGui")

from drawing import DARK_THEME, TraceLayer, build_trace_paths, composite, theme_for  # noqa: E402
from spirotrace_core import SpiroSession, TraceSegment  # noqa: E402
from spirotrace_math import PenStyle, SpiroParams  # noqa: E402


@pytest.fixture(scope="module")
def qt_app():
    app = QtGui.QGuiApplication.instance() or QtGui.QGuiApplication([])
    yield app


def test_runs_split_on_style_change():
    red = PenStyle("#ff0000", 2.0)
    blue = PenStyle("#0000ff", 2.0)
    segments = [
        TraceSegment((0.0, 0.0), (1.0, 0.0), red),
        TraceSegment((1.0, 0.0), (2.0, 0.0), red),
        TraceSegment((2.0, 0.0), (3.0, 0.0), blue),
        TraceSegment((9.0, 9.0), (10.0, 9.0), blue),
    ]
    runs = build_trace_paths(segments)
    assert [style for style, _ in runs] == [red, blue]
    # moveTo + two lineTo
    assert runs[0][1].elementCount() == 3
    # a gap starts a new subpath inside the same run
    assert runs[1][1].elementCount() == 4


def test_layer_resets_after_clear(qt_app):
    session = SpiroSession(SpiroParams(speed=3.0))
    session.start_auto()
    session.tick()
    layer = TraceLayer()
    layer.sync(session.trace)
    assert layer.baked == 3
    assert layer.image is not None
    session.clear()
    layer.sync(session.trace)
    assert layer.baked == 0
    assert layer.image is None


def test_theme_for():
    assert theme_for(True) is DARK_THEME
    assert theme_for(False) is not DARK_THEME


def test_composite_paints_trace(qt_app):
    session = SpiroSession(SpiroParams(color="#ff0000", stroke_width=6.0, speed=50.0))
    session.start_auto()
    for _ in range(10):
        session.tick()
    session.show_guides = False

    image = QtGui.QImage(400, 400, QtGui.QImage.Format_ARGB32)
    image.fill(QtGui.QColor("#000000"))
    layer = TraceLayer()
    layer.sync(session.trace)
    painter = QtGui.QPainter(image)
    try:
        composite(
            painter,
            layer=layer,
            overlay=session.overlay(),
            view=session.view,
            viewport=(400.0, 400.0),
            pen_color=session.params.color,
            theme=theme_for(True),
        )
    finally:
        painter.end()

    # the default trace starts at (145, 0) in logical space, i.e. screen (345, 200)
    pixel = image.pixelColor(345, 200)
    assert pixel.red() > 200
    assert pixel.green() < 60


def test_layer_rebuilds_when_trace_is_refilled_after_clear(qt_app):
    session = SpiroSession(SpiroParams(speed=3.0, color="#ff0000"))
    session.start_auto()
    session.tick()
    layer = TraceLayer()
    layer.sync(session.trace)

    session.clear()
    session.update_params(color="#0000ff")
    session.start_auto()
    session.tick()
    session.tick()
    layer.sync(session.trace)
    assert layer.baked == 6
    assert layer.rebuild_count == 2


def test_layer_draws_new_segments_without_rebuilding(qt_app):
    session = SpiroSession(SpiroParams(speed=50.0))
    session.start_auto()
    layer = TraceLayer()
    for _ in range(300):
        session.tick()
        layer.sync(session.trace)
    settled = layer.rebuild_count
    # the trace stays inside the area cached once it has gone round
    for _ in range(300):
        session.tick()
        layer.sync(session.trace)
    assert layer.rebuild_count == settled
    assert layer.baked == session.trace.segment_count


def test_layer_rebuilds_only_past_the_zoom_threshold(qt_app):
    session = SpiroSession(SpiroParams(speed=50.0))
    session.start_auto()
    for _ in range(400):
        session.tick()
    layer = TraceLayer()
    layer.sync(session.trace, scale=1.0)
    assert layer.rebuild_count == 1
    layer.sync(session.trace, scale=1.2)
    assert layer.rebuild_count == 1
    layer.sync(session.trace, scale=2.0)
    assert layer.rebuild_count == 2
    width = layer.image.width()
    assert width == pytest.approx(layer.rect.width() * 2.0, abs=1.0)


def test_layer_image_size_is_capped(qt_app):
    session = SpiroSession(SpiroParams(speed=50.0))
    session.start_auto()
    for _ in range(400):
        session.tick()
    layer = TraceLayer()
    layer.sync(session.trace, scale=500.0)
    assert max(layer.image.width(), layer.image.height()) <= TraceLayer.MAX_IMAGE_SIDE

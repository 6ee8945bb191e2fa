import pytest

from view_transform import MAX_ZOOM, MIN_ZOOM, ViewTransform, clamp_zoom

VIEWPORT = (800.0, 600.0)


def test_identity_maps_origin_to_centre():
    view = ViewTransform()
    assert view.is_identity
    assert view.to_screen((0.0, 0.0), VIEWPORT) == (400.0, 300.0)


def test_zoom_is_clamped():
    assert clamp_zoom(100.0) == MAX_ZOOM
    assert clamp_zoom(0.0) == MIN_ZOOM
    assert clamp_zoom(float("nan")) == 1.0
    view = ViewTransform()
    for _ in range(50):
        view.zoom_by(1.5)
    assert view.zoom == MAX_ZOOM


def test_zoom_keeps_anchor_fixed():
    view = ViewTransform(zoom=1.3, pan=(20.0, -15.0))
    anchor = (610.0, 120.0)
    logical = view.to_logical(anchor, VIEWPORT)
    view.zoom_by(1.7, anchor=anchor, viewport=VIEWPORT)
    assert view.to_screen(logical, VIEWPORT) == pytest.approx(anchor)


def test_pan_and_reset():
    view = ViewTransform()
    view.pan_by(10.0, 5.0)
    view.pan_by(-3.0, 1.0)
    assert view.pan == (7.0, 6.0)
    assert view.to_logical(view.to_screen((12.0, -4.0), VIEWPORT), VIEWPORT) == pytest.approx((12.0, -4.0))
    view.reset()
    assert view.is_identity


def test_invalid_zoom_factor_is_ignored():
    view = ViewTransform(zoom=2.0)
    assert view.zoom_by(0.0) == 2.0
    assert view.zoom_by(-1.0) == 2.0


def test_pinch_scales_by_finger_spacing_and_follows_midpoint():
    view = ViewTransform(zoom=1.0, pan=(10.0, 0.0))
    previous = ((300.0, 300.0), (400.0, 300.0))
    current = ((270.0, 320.0), (470.0, 320.0))
    logical = view.to_logical((350.0, 300.0), VIEWPORT)
    assert view.pinch(previous, current, VIEWPORT) == pytest.approx(2.0)
    assert view.to_screen(logical, VIEWPORT) == pytest.approx((370.0, 320.0))


def test_pinch_with_touching_fingers_is_ignored():
    view = ViewTransform(zoom=1.5)
    same = ((100.0, 100.0), (100.0, 100.0))
    assert view.pinch(same, ((0.0, 0.0), (50.0, 0.0)), VIEWPORT) == 1.5
    assert view.pan == (0.0, 0.0)


def test_pinch_respects_zoom_limits():
    view = ViewTransform(zoom=4.0)
    view.pinch(((0.0, 0.0), (10.0, 0.0)), ((0.0, 0.0), (100.0, 0.0)), VIEWPORT)
    assert view.zoom == MAX_ZOOM

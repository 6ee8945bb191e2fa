import math

import pytest

from spirotrace_core import TraceAccumulator
from spirotrace_math import GearConfig, PenStyle, STEP_LENGTH, pen_tip


@pytest.fixture
def config():
    return GearConfig(fixed_scale=100.0, moving_radius=25.0, pen_offset=50.0)


def test_hypotrochoid_first_steps(config):
    trace = TraceAccumulator()
    trace.append_step(config)
    trace.append_step(config)

    segments = trace.snapshot()
    assert len(segments) == 2
    assert segments[0].start == pytest.approx((125.0, 0.0))
    assert segments[0].end == pytest.approx(pen_tip(config, 2.0))
    assert segments[1].start == segments[0].end
    assert segments[1].end == pytest.approx(pen_tip(config, 4.0))
    assert trace.distance == 4.0


def test_distance_grows_by_step_count(config):
    trace = TraceAccumulator()
    for steps in (1, 5, 0, 3):
        before = trace.distance
        added = trace.advance(config, steps)
        assert len(added) == steps
        assert math.isclose(trace.distance, before + steps * STEP_LENGTH)
    assert trace.segment_count == 9


def test_advance_matches_repeated_single_steps(config):
    batched = TraceAccumulator()
    batched.advance(config, 6)
    single = TraceAccumulator()
    for _ in range(6):
        single.append_step(config)
    for a, b in zip(batched.snapshot(), single.snapshot()):
        assert a.start == pytest.approx(b.start)
        assert a.end == pytest.approx(b.end)


def test_clear_resets_distance_and_segments(config):
    trace = TraceAccumulator()
    trace.advance(config, 10)
    trace.clear()
    assert trace.segment_count == 0
    assert trace.distance == 0.0
    seg = trace.append_step(config)
    assert seg.start == pytest.approx((125.0, 0.0))


def test_config_change_only_affects_new_segments(config):
    trace = TraceAccumulator()
    trace.advance(config, 4, style=PenStyle("#ff0000", 2.0))
    before = trace.snapshot()

    other = GearConfig(fixed_scale=150.0, moving_radius=40.0, pen_offset=10.0)
    trace.advance(other, 2, style=PenStyle("#0000ff", 5.0))

    after = trace.snapshot()
    assert after[:4] == before
    assert after[4].start == pytest.approx(pen_tip(other, 8.0))
    assert after[4].style == PenStyle("#0000ff", 5.0)
    assert trace.distance == 12.0


def test_snapshot_from_offset(config):
    trace = TraceAccumulator()
    trace.advance(config, 5)
    assert trace.snapshot(3) == trace.snapshot()[3:]


@pytest.mark.parametrize("step", [0.0, -2.0, float("nan")])
def test_invalid_step_length(config, step):
    with pytest.raises(ValueError):
        TraceAccumulator().append_step(config, step)


def test_clear_bumps_generation(config):
    trace = TraceAccumulator()
    start = trace.generation
    trace.advance(config, 2)
    assert trace.generation == start
    trace.clear()
    assert trace.generation == start + 1

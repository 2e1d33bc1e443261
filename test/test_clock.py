# test/test_clock.py
import logging

import pytest

from mavtelemetry.core import Registry, TimeSeries
from mavtelemetry.system import ClockUpdate, TimeSynchronizer, is_absolute_time


def test_first_advance_is_accepted():
    clk = TimeSynchronizer()
    assert clk.advance(5_000_000) is ClockUpdate.ACCEPTED
    assert clk.time == 5.0
    assert clk.time_valid
    assert clk.time_min == clk.time_max == 5.0


def test_rejects_backward_jump(caplog):
    clk = TimeSynchronizer()
    clk.advance(10_000_000)
    with caplog.at_level(logging.WARNING):
        assert clk.advance(4_000_000) is ClockUpdate.BACKWARD_JUMP
    assert clk.time == 10.0
    assert "too old" in caplog.text


def test_rejects_forward_jump():
    clk = TimeSynchronizer()
    clk.advance(0)
    assert clk.advance(101_000_000) is ClockUpdate.FORWARD_JUMP
    assert clk.time == 0.0


def test_small_backward_step_is_accepted():
    clk = TimeSynchronizer()
    clk.advance(10_000_000)
    assert clk.advance(6_000_000) is ClockUpdate.ACCEPTED
    assert clk.time_min == 6.0
    assert clk.time_max == 10.0


def test_allow_jumps_overrides_bounds():
    clk = TimeSynchronizer()
    clk.advance(0)
    assert clk.advance(500_000_000, allow_jumps=True) is ClockUpdate.ACCEPTED
    assert clk.time == 500.0


def test_gradual_drift_is_accepted():
    clk = TimeSynchronizer()
    for k in range(30):
        assert clk.advance(k * 90_000_000) is ClockUpdate.ACCEPTED


def test_bounds_from_config_values():
    clk = TimeSynchronizer(max_back_jump_s=1.0, max_fwd_jump_s=2.0)
    clk.advance(10_000_000)
    assert clk.advance(8_500_000) is ClockUpdate.BACKWARD_JUMP
    assert clk.advance(12_500_000) is ClockUpdate.FORWARD_JUMP


def test_consume_time_update():
    clk = TimeSynchronizer()
    assert not clk.consume_time_update()
    clk.advance(1)
    assert clk.consume_time_update()
    assert not clk.consume_time_update()


def test_record_reference_keeps_only_positive_epochs():
    clk = TimeSynchronizer()
    clk.record_reference(1_000_000, 0)
    clk.record_reference(2_000_000, 1_700_000_002_000_000)
    assert clk.references == [(2_000_000, 1_700_000_002_000_000)]


def test_resolve_offset_is_exact_mean():
    clk = TimeSynchronizer()
    clk.record_reference(1_000_000, 1_700_000_001_000_000)
    clk.record_reference(2_000_000, 1_700_000_002_000_000)
    clk.record_reference(3_000_000, 1_700_000_003_000_001)

    reg = Registry()
    reg.register("g/x", TimeSeries.from_arrays("x", [1.0], [0.0]))
    assert clk.resolve_offset(reg) == 1_700_000_000_000_000
    assert reg["g/x"].epoch_data_start == 1_700_000_000_000_000


def test_resolve_offset_falls_back_to_guess(caplog):
    clk = TimeSynchronizer()
    clk.guess_offset(5_000_000, 1_600_000_005_000_000)
    with caplog.at_level(logging.WARNING):
        assert clk.resolve_offset() == 1_600_000_000_000_000
    assert "no time reference" in caplog.text


def test_shift_moves_references_and_guess():
    clk = TimeSynchronizer()
    clk.record_reference(10_000_000, 1_700_000_010_000_000)
    clk.guess_offset(0, 1_000)
    clk.shift(2.0)

    assert clk.references == [(8_000_000, 1_700_000_010_000_000)]
    assert clk.offset_guess_usec == 2_001_000
    assert clk.resolve_offset() == 1_700_000_002_000_000


def test_absorb_takes_references_and_bounds():
    a = TimeSynchronizer()
    a.record_reference(1_000_000, 1_700_000_001_000_000)
    b = TimeSynchronizer()
    b.record_reference(1_000_000, 1_700_000_001_000_000)
    b.record_reference(50_000_000, 1_700_000_050_000_000)

    a.absorb(b)
    assert len(a.references) == 2
    assert a.time_max == 50.0


def test_absorb_moves_references_onto_own_axis():
    a = TimeSynchronizer()
    a.record_reference(10_000_000, 1_700_000_010_000_000)
    a.resolve_offset()
    b = TimeSynchronizer()
    b.record_reference(10_000_000, 1_700_001_010_000_000)
    b.resolve_offset()

    a.absorb(b)
    assert a.references == [
        (10_000_000, 1_700_000_010_000_000),
        (1_010_000_000, 1_700_001_010_000_000),
    ]
    assert a.time_max == pytest.approx(1010.0)
    assert a.resolve_offset() == 1_700_000_000_000_000


def test_copy_is_independent():
    a = TimeSynchronizer()
    a.record_reference(1_000_000, 1_700_000_001_000_000)
    b = a.copy()
    b.record_reference(2_000_000, 1_700_000_002_000_000)
    assert len(a.references) == 1
    assert b.time == 2.0


@pytest.mark.parametrize(
    "usec, expected",
    [(0, False), (3_600_000_000, False), (1_700_000_000_000_000, True)],
)
def test_is_absolute_time(usec, expected):
    assert is_absolute_time(usec) is expected

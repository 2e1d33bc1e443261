# test/test_channel.py
import pytest

from mavtelemetry.core import (
    Channel,
    ChannelMeta,
    EventLog,
    InvalidChannel,
    MergeConflict,
    Parameter,
    TimeSeries,
)


def _events(*pairs):
    ev = EventLog("armed")
    for t, label in pairs:
        ev.append(label, t)
    return ev


def test_channel_is_abstract():
    with pytest.raises(TypeError):
        Channel("x")  # type: ignore[abstract]


def test_channel_rejects_empty_name():
    with pytest.raises(InvalidChannel):
        EventLog("   ")


def test_channel_rejects_slash_in_name():
    with pytest.raises(InvalidChannel):
        Parameter("a/b")


def test_channel_rejects_non_meta():
    with pytest.raises(InvalidChannel):
        TimeSeries("x", meta={"unit": "m"})  # type: ignore[arg-type]


def test_full_path_and_unit():
    ch = TimeSeries("roll", meta=ChannelMeta(unit="deg"), group_path="airstate/angles/")
    assert ch.full_path == "airstate/angles/roll"
    assert ch.unit == "deg"
    assert ch.parent is None


def test_epoch_data_bounds():
    ts = TimeSeries.from_arrays("x", [1.0, 2.5], [0.0, 0.0], epoch_data_start=1_000_000)
    assert ts.epoch_data_begin == 2_000_000
    assert ts.epoch_data_end == 3_500_000

    p = Parameter("p", 1.0, epoch_data_start=42)
    assert p.epoch_data_begin == 42
    assert p.t_start is None


def test_eventlog_skips_repeated_label():
    ev = EventLog("armed")
    assert ev.append("armed", 0.0)
    assert not ev.append("armed", 1.0)
    assert ev.append("disarmed", 2.0)
    assert ev.append("armed", 3.0)

    assert ev.n == 3
    assert ev.latest == "armed"
    assert ev.events() == [(0.0, "armed"), (2.0, "disarmed"), (3.0, "armed")]
    assert ev.t_start == 0.0
    assert ev.t_end == 3.0


def test_eventlog_clone_is_independent():
    ev = _events((0.0, "on"))
    c = ev.clone()
    c.append("off", 1.0)
    assert ev.n == 1
    assert c.n == 2


def test_eventlog_merge_unions_in_time_order():
    a = _events((0.0, "on"), (4.0, "off"))
    b = _events((2.0, "off"), (3.0, "on"))
    a.merge_in(b)
    assert a.events() == [(0.0, "on"), (2.0, "off"), (3.0, "on"), (4.0, "off")]


def test_eventlog_merge_with_itself_is_idempotent():
    a = _events((0.0, "on"), (1.0, "off"), (2.0, "on"))
    before = a.events()
    a.merge_in(a.clone())
    assert a.events() == before


def test_eventlog_merge_collapses_consecutive_labels():
    a = _events((0.0, "on"))
    b = _events((1.0, "on"), (2.0, "off"))
    a.merge_in(b)
    assert a.events() == [(0.0, "on"), (2.0, "off")]


def test_eventlog_merge_rebases_other_epoch():
    a = _events((0.0, "on"))
    a.epoch_data_start = 1_000_000
    b = _events((0.0, "off"))
    b.epoch_data_start = 3_000_000
    a.merge_in(b)
    assert a.events() == [(0.0, "on"), (2.0, "off")]


def test_eventlog_rebase_keeps_absolute_times():
    ev = _events((1.0, "on"))
    ev.epoch_data_start = 3_000_000
    ev.rebase(1_000_000)
    assert ev.events() == [(3.0, "on")]
    assert ev.epoch_data_begin == 4_000_000


def test_parameter_set_clear():
    p = Parameter("number flights")
    assert not p.is_present()
    p.set(3)
    assert p.value == 3
    assert p.n == 1
    p.clear()
    assert p.value is None


def test_parameter_merge_last_write_wins():
    a = Parameter("p", 1.0)
    a.merge_in(Parameter("p", 2.0))
    assert a.value == 2.0

    a.merge_in(Parameter("p"))
    assert a.value == 2.0


def test_parameter_merge_rejects_other_variant():
    with pytest.raises(MergeConflict):
        Parameter("p", 1.0).merge_in(EventLog("p"))

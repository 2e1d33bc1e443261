# test/test_postprocess.py
import logging

import numpy as np
import pytest

from mavtelemetry.core import EventLog, Parameter, Registry, SystemConfig, TimeSeries
from mavtelemetry.postprocess import (
    PIPELINE,
    detect_flights,
    flightbook,
    glide_distance,
    glide_performance,
    power_stats,
    relative_wind_angle,
    repair_timing,
    run_pipeline,
    trapezoid_steps,
    wind_direction,
)


def _reg(**series):
    """Registry from {path: (t, v)}; '__' in keyword names stands for '/'."""
    reg = Registry()
    for key, (t, v) in series.items():
        path = key.replace("__", "/")
        name = path.rsplit("/", 1)[1]
        reg.register(path, TimeSeries.from_arrays(name, t, v))
    return reg


def _flight_registry():
    t = [0.0, 1.0, 2.0, 3.0, 4.0]
    reg = Registry()
    reg.register("airstate/alt GND", TimeSeries.from_arrays("alt GND", t, [0.0, 5.0, 5.0, 0.0, 0.0]))
    reg.register("airstate/throttle", TimeSeries.from_arrays("throttle", t, [0.0, 50.0, 50.0, 0.0, 0.0]))
    return reg


# ---- timing repair ----
def test_repair_timing_makes_flagged_series_periodic():
    reg = Registry()
    ts = reg.register("g/x", TimeSeries.from_arrays("x", [0.0, 3.0], [1.0, 4.0]))
    ts.append(2.0, 0.1)
    ts.append(3.0, 0.2)
    assert ts.bad_timestamps

    assert repair_timing(reg)
    assert np.allclose(ts.time, [0.0, 1.0, 2.0, 3.0])
    assert not ts.bad_timestamps

    backup = reg["g/x_orig"]
    assert np.allclose(backup.time, [0.0, 0.1, 0.2, 3.0])
    assert not backup.bad_timestamps


def test_repair_timing_keeps_first_backup():
    reg = Registry()
    ts = reg.register("g/x", TimeSeries.from_arrays("x", [0.0, 2.0], [1.0, 3.0]))
    ts.append(2.0, 1.5)
    repair_timing(reg)

    ts.append(9.0, 0.5)
    assert repair_timing(reg)
    assert reg["g/x_orig"].n == 3


def test_repair_timing_without_flagged_series():
    reg = _reg(g__x=([0.0, 1.0], [1.0, 2.0]))
    assert not repair_timing(reg)
    assert "g/x_orig" not in reg


# ---- flight book ----
def test_detect_flights():
    book = detect_flights([0, 1, 2, 3], [0, 5, 5, 0], [0, 50, 50, 0])
    assert book.events == [(1.0, "takeoff"), (3.0, "landing")]
    assert book.num_flights == 1
    assert book.flight_time == 2.0


def test_detect_flights_needs_throttle():
    book = detect_flights([0, 1, 2], [0, 5, 5], [0, 10, 10])
    assert book.num_flights == 0
    assert book.events == []


def test_flightbook_writes_derived_channels():
    reg = _flight_registry()
    reg.set_epoch(1_000_000)
    assert flightbook(reg)

    events = reg["flightbook/takeoff_landing"]
    assert isinstance(events, EventLog)
    assert events.events() == [(1.0, "takeoff"), (3.0, "landing")]
    assert reg["flightbook/number flights"].value == 1
    assert reg["flightbook/total flight time"].value == pytest.approx(2.0)
    assert reg["flightbook/first takeoff"].value == pytest.approx(1.0)
    assert reg["flightbook/last landing"].value == pytest.approx(3.0)
    assert reg["flightbook/last landing"].epoch_data_start == 1_000_000
    assert reg["flightbook/number flights"].derived


def test_flightbook_is_repeatable():
    reg = _flight_registry()
    flightbook(reg)
    flightbook(reg)
    assert reg["flightbook/takeoff_landing"].n == 2
    assert reg["flightbook/number flights"].value == 1


def test_flightbook_missing_inputs_is_skipped(caplog):
    reg = _reg(airstate__throttle=([0.0], [0.0]))
    with caplog.at_level(logging.INFO):
        assert not flightbook(reg)
    assert "flightbook/number flights" not in reg
    assert "skipped" in caplog.text


def test_flightbook_refuses_unsynced_epochs(caplog):
    reg = _flight_registry()
    reg["airstate/throttle"].epoch_data_start = 5
    with caplog.at_level(logging.WARNING):
        assert not flightbook(reg)
    assert "unsync'd" in caplog.text


# ---- power ----
def test_trapezoid_steps():
    assert np.allclose(trapezoid_steps([0.0, 1.0, 3.0], [0.0, 2.0, 2.0]), [0.0, 1.0, 4.0])
    assert np.allclose(trapezoid_steps([5.0], [1.0]), [0.0])


def test_power_stats():
    reg = _reg(
        power__battery_voltage=([0.0, 1.0], [10.0, 10.0]),
        power__battery_current=([0.0, 1.0], [1.0, 1.0]),
    )
    assert power_stats(reg)

    assert np.allclose(reg["power/power"].values, [10.0, 10.0])
    charge = reg["power/inst. charge"]
    assert np.allclose(charge.time, [0.0, 1.0])
    assert np.allclose(charge.values, [0.0, 1.0])
    assert reg["power/cum. charge"].last[1] == pytest.approx(1.0 / 3600.0)
    assert reg["power/cum. charge"].unit == "Ah"
    assert reg["power/cum. consumption"].last[1] == pytest.approx(10.0 / 3600.0)
    assert reg["power/inst. consumption"].unit == "Ws"
    assert reg["power/power"].derived


def test_power_stats_without_current():
    reg = _reg(power__battery_voltage=([0.0, 1.0], [10.0, 10.0]))
    assert not power_stats(reg)
    assert "power/power" not in reg


# ---- glide ----
def test_wind_direction_aeronautic_convention():
    assert np.allclose(wind_direction([0.0, 4.0, 0.0, -4.0], [-4.0, 0.0, 4.0, 0.0]), [0.0, 270.0, 180.0, 90.0])


def test_relative_wind_angle():
    # wind from north, heading north: pure head wind
    assert relative_wind_angle(0.0, 0.0) == pytest.approx(180.0)
    # wind from south, heading north: pure tail wind
    assert relative_wind_angle(180.0, 0.0) == pytest.approx(0.0, abs=1e-6)
    assert relative_wind_angle(90.0, 0.0) == pytest.approx(90.0)


def test_glide_distance():
    reg = _reg(
        XKF1__PN=([0.0, 1.0, 2.0], [0.0, 3.0, 3.0]),
        XKF1__PE=([0.0, 1.0, 2.0], [0.0, 4.0, 4.0]),
        XKF1__PD=([0.0, 1.0, 2.0], [0.0, 0.0, 0.0]),
    )
    assert glide_distance(reg)
    dist = reg["glideperf/cum. horz. dist."]
    assert np.allclose(dist.values, [0.0, 5.0, 5.0])
    assert dist.unit == "m"


def test_glide_distance_without_position():
    assert not glide_distance(Registry())


def test_glide_performance_with_airspeed(caplog):
    t = [0.0, 1.0, 2.0, 3.0, 4.0]
    reg = _reg(
        ARSP__TrueSpeed=(t, [10.0, 20.0, 16.0, 12.0, 18.0]),
        NKF1__VD=(t, [2.0, 2.0, -1.0, 2.0, 2.0]),
        ATT__Roll=(t, [0.0, 0.0, 0.0, 50.0, 30.0]),
        ATT__Pitch=(t, [0.0, 0.0, 0.0, 0.0, 0.0]),
        IMU__AccX=(t, [0.0, 0.0, 0.0, 0.0, 0.0]),
    )
    with caplog.at_level(logging.INFO):
        assert glide_performance(reg)

    glide = reg["glideperf/glide ratio"]
    assert np.allclose(glide.time, [0.0, 1.0, 4.0])
    assert np.allclose(glide.values, [5.0, 10.0, 9.0 / np.cos(np.radians(30.0))])
    assert "max. A/C glide ratio of 10.39 at speed 18.00" in caplog.text

    avg = reg["glideperf/glide ratio 5sec avg"]
    assert np.allclose(avg.time, glide.time)
    assert avg.values[1] == pytest.approx(7.5)
    assert "glideperf/wind direction" not in reg


def test_glide_performance_reconstructs_airspeed_from_wind():
    t = [0.0, 1.0, 2.0]
    zeros = [0.0, 0.0, 0.0]
    reg = _reg(
        NKF1__VE=(t, zeros),
        NKF1__VN=(t, [10.0, 10.0, 10.0]),
        NKF2__VWE=(t, zeros),
        NKF2__VWN=(t, [-4.0, -4.0, -4.0]),
        ATT__Yaw=(t, zeros),
        ATT__Roll=(t, zeros),
        ATT__Pitch=(t, zeros),
        IMU__AccX=(t, zeros),
        NKF1__VD=(t, [2.0, 2.0, 2.0]),
    )
    assert glide_performance(reg)

    assert np.allclose(reg["glideperf/groundspeed"].values, [10.0, 10.0, 10.0])
    assert np.allclose(reg["glideperf/wind direction"].values, [0.0, 0.0, 0.0])
    assert np.allclose(reg["glideperf/wind speed"].values, [4.0, 4.0, 4.0])
    assert np.allclose(reg["glideperf/head wind"].values, [4.0, 4.0, 4.0])
    assert np.allclose(reg["glideperf/airspeed estimate"].values, [14.0, 14.0, 14.0])
    assert np.allclose(reg["glideperf/glide ratio"].values, [7.0, 7.0, 7.0])


def test_glide_performance_aborts_without_pitch(caplog):
    t = [0.0, 1.0]
    reg = _reg(
        ARSP__TrueSpeed=(t, [10.0, 20.0]),
        NKF1__VD=(t, [2.0, 2.0]),
        ATT__Roll=(t, [0.0, 0.0]),
        IMU__AccX=(t, [0.0, 0.0]),
    )
    with caplog.at_level(logging.ERROR):
        assert not glide_performance(reg)
    assert "pitch angle not found" in caplog.text
    assert "glideperf/glide ratio" not in reg


def test_glide_performance_ignores_flat_airspeed(caplog):
    t = [0.0, 1.0]
    reg = _reg(
        ARSP__TrueSpeed=(t, [10.0, 11.0]),
        NKF1__VD=(t, [2.0, 2.0]),
        ATT__Roll=(t, [0.0, 0.0]),
        ATT__Pitch=(t, [0.0, 0.0]),
        IMU__AccX=(t, [0.0, 0.0]),
    )
    with caplog.at_level(logging.WARNING):
        assert not glide_performance(reg)
    assert "low variance" in caplog.text


# ---- pipeline ----
def test_pipeline_order():
    assert [name for name, _ in PIPELINE] == [
        "timing", "flightbook", "powerstats", "glideperf_pos", "glideperf_vel",
    ]


def test_run_pipeline_on_empty_registry():
    results = run_pipeline(Registry())
    assert set(results) == {name for name, _ in PIPELINE}
    assert not any(results.values())


def test_run_pipeline_uses_config():
    reg = _flight_registry()
    results = run_pipeline(reg, SystemConfig(flight_min_throttle=60.0))
    assert results["flightbook"]
    assert reg["flightbook/number flights"].value == 0
    assert isinstance(reg["flightbook/first takeoff"], Parameter)

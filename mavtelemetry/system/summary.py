# mavtelemetry/system/summary.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

from ..core.channel import Parameter
from ..core.timeseries import TimeSeries
from ..postprocess.flightbook import (
    FIRST_TAKEOFF_PATH,
    FLIGHT_TIME_PATH,
    LAST_LANDING_PATH,
    NUM_FLIGHTS_PATH,
)

if TYPE_CHECKING:
    from .system import System

INDENT = "   - "


def seconds_to_timestr(seconds: float | None) -> str:
    """1234.5 -> '00:20:34.5'"""
    if seconds is None:
        return "n/a"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{sign}{int(hours):02d}:{int(minutes):02d}:{secs:04.1f}"


def epoch_to_datetime(epoch_s: float | None) -> str:
    if epoch_s is None:
        return "n/a"
    try:
        when = datetime.fromtimestamp(epoch_s, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return f"<{epoch_s} s>"
    return when.strftime("%Y-%m-%d %H:%M:%S UTC")


def _ids(msgids: Iterable[int]) -> str:
    return ",".join(str(i) for i in sorted(msgids))


def _series(system: "System", path: str) -> TimeSeries | None:
    ch = system.find(path)
    if isinstance(ch, TimeSeries) and ch.is_present():
        return ch
    return None


def _param(system: "System", path: str) -> Parameter | None:
    ch = system.find(path)
    if isinstance(ch, Parameter) and ch.is_present():
        return ch
    return None


def _range_line(system: "System", label: str, path: str, *, descending: bool = False) -> list[str]:
    series = _series(system, path)
    if series is None:
        return []
    lo, hi = series.get_min(), series.get_max()
    if descending:
        lo, hi = hi, lo
    return [f"{INDENT}{label}: {lo:g} ... {series.meta.format_value(hi)}"]


def _last_line(system: "System", label: str, path: str) -> list[str]:
    series = _series(system, path)
    if series is None:
        return []
    _, value = series.last
    return [f"{INDENT}{label}: {series.meta.format_value(value)}"]


def _flightbook_lines(system: "System") -> list[str]:
    lines = []
    for label, path in (("first takeoff", FIRST_TAKEOFF_PATH), ("last landing", LAST_LANDING_PATH)):
        p = _param(system, path)
        if p is not None:
            lines.append(f"{INDENT}{label}: {epoch_to_datetime(p.value + p.epoch_data_start / 1e6)}")
    nflights = _param(system, NUM_FLIGHTS_PATH)
    if nflights is not None:
        lines.append(f"{INDENT}number of flights: {int(nflights.value)}")
    flight_time = _param(system, FLIGHT_TIME_PATH)
    if flight_time is not None:
        lines.append(f"{INDENT}total flight time: {seconds_to_timestr(flight_time.value)}")
    return lines


def format_summary(system: "System") -> str:
    """
    Human readable multi-section report of one system.

    Only the general section is produced for systems loaded in deferred
    mode; the other sections read channels that are not available then.
    Lines whose channels are missing are left out.
    """
    begin = system.time_active_begin()
    end = system.time_active_end()
    duration = None if begin is None or end is None else end - begin

    lines = [
        "General:",
        f"{INDENT}id: {system.id}",
        f"{INDENT}type: {system.vehicle_type_name}",
        f"{INDENT}autopilot: {system.autopilot_name}",
        f"{INDENT}has_been_armed: {int(system.has_been_armed)}",
        f"{INDENT}active for {seconds_to_timestr(duration)} between "
        f"{epoch_to_datetime(begin)} and {epoch_to_datetime(end)}",
    ]

    if not system.deferred_load:
        lines.append("Power:")
        lines += _range_line(system, "battery voltage", "power/battery_voltage", descending=True)
        lines += _range_line(system, "battery current", "power/battery_current")

        lines.append("Flight Book:")
        lines += _flightbook_lines(system)

        lines.append("Flight performance:")
        lines += _range_line(system, "airspeed", "airstate/airspeed")
        lines += _range_line(system, "alt. MSL", "airstate/alt MSL")
        lines += _range_line(system, "climb rate", "airstate/climb")
        lines += _range_line(system, "throttle", "airstate/throttle")

        lines.append("Last Position:")
        lines += _last_line(system, "lat", "airstate/lat")
        lines += _last_line(system, "lon", "airstate/lon")
        lines += _last_line(system, "rel. alt", "airstate/alt GND")

        lines.append("Computer:")
        ap_load = _series(system, "computer/autopilot_load")
        if ap_load is not None:
            lines.append(f"{INDENT}max. autopilot load: {ap_load.meta.format_value(ap_load.get_max())}")

        traffic = system.traffic
        lines.append("MavLink:")
        lines.append(
            f"{INDENT}received total: {traffic.num_received} "
            f"(IDs: {_ids(traffic.msgids_interpreted)})"
        )
        if traffic.num_uninterpreted > 0:
            lines.append(
                f"{INDENT}uninterpreted: {traffic.num_uninterpreted} "
                f"(IDs: {_ids(traffic.msgids_uninterpreted)})"
            )
        lines.append(f"{INDENT}errors: {traffic.num_error}")

    return "\n".join(lines) + "\n"

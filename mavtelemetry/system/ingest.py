# mavtelemetry/system/ingest.py
from __future__ import annotations

import logging
import math
from enum import IntFlag
from typing import TYPE_CHECKING, Sequence

from ..core.channel import EventLog
from ..core.timeseries import TimeSeries
from .traffic import TrafficOutcome

if TYPE_CHECKING:
    from ..core.registry import Registry
    from .clock import TimeSynchronizer
    from .traffic import TrafficSummary


class ModeFlag(IntFlag):
    CUSTOM_MODE_ENABLED = 1
    TEST_ENABLED = 2
    AUTO_ENABLED = 4
    GUIDED_ENABLED = 8
    STABILIZE_ENABLED = 16
    HIL_ENABLED = 32
    MANUAL_INPUT_ENABLED = 64
    SAFETY_ARMED = 128


VEHICLE_TYPES: dict[int, str] = {
    0: "generic",
    1: "fixed wing",
    2: "quadrotor",
    3: "coax",
    4: "heli",
    5: "antennatracker",
    6: "GCS",
    7: "airship",
    8: "balloon",
    9: "rocket",
    10: "rover",
    11: "boat",
    12: "submarine",
    13: "hexarotor",
    14: "octarotor",
    15: "tricopter",
    16: "flapwing",
    17: "kite",
    18: "onboard controller",
}

AUTOPILOT_TYPES: dict[int, str] = {
    0: "generic",
    2: "Slugs",
    3: "ArduPilotMega",
    4: "OpenPilot",
    12: "PX4",
}

SYSTEM_STATES: dict[int, str] = {
    0: "uninitialized",
    1: "boot",
    2: "calibrating",
    3: "standby",
    4: "active",
    5: "critical",
    6: "emergency",
    7: "poweroff",
}

MAX_HEADING_DEG = 360.0


def vehicle_type_name(code: int | None) -> str:
    return "unknown" if code is None else VEHICLE_TYPES.get(code, "unknown")


def autopilot_name(code: int | None) -> str:
    return "unknown" if code is None else AUTOPILOT_TYPES.get(code, "unknown")


class IngestMixin:
    """
    Domain update operations of a System.

    Every operation resolves (creating if absent) its channels through
    `_series`/`_event` and appends one sample per field at the current
    logical time of the clock. Units are attached when a channel is created.
    """

    registry: Registry
    clock: TimeSynchronizer
    traffic: TrafficSummary
    log: logging.Logger | logging.LoggerAdapter
    vehicle_type: int | None
    autopilot_type: int | None
    has_been_armed: bool

    # ---- primitives ----
    def _series(self, path: str, unit: str = "", dtype: str = "float") -> TimeSeries:
        return self.registry.get_or_create(path, TimeSeries, unit=unit, dtype=dtype)

    def _event(self, path: str, unit: str = "") -> EventLog:
        return self.registry.get_or_create(path, EventLog, unit=unit)

    def _record(self, path: str, unit: str, value: float, dtype: str = "float") -> None:
        self._series(path, unit, dtype).append(value, self.clock.time)

    def _record_heading(self, path: str, value_deg: float) -> None:
        series = self._series(path, "deg")
        if value_deg <= MAX_HEADING_DEG:
            series.append(value_deg, self.clock.time)

    def _record_flag(self, path: str, is_on: bool, on: str, off: str) -> None:
        self._event(path).append(on if is_on else off, self.clock.time)

    # ---- system state ----
    def track_system(
        self,
        vehicle_type: int,
        status: int,
        autopilot: int,
        base_mode: int,
        custom_mode: int,
    ) -> None:
        self._record("system/custom_mode", "autopilot-specific mode", custom_mode, "uint")
        self._event("system/status", "MAV_STATE_ENUM").append(
            SYSTEM_STATES.get(status, "unknown"), self.clock.time
        )

        mode = ModeFlag(base_mode & 0xFF)
        armed = ModeFlag.SAFETY_ARMED in mode
        self._record_flag("mission/armed", armed, "armed", "disarmed")
        self._record_flag(
            "mission/stabilized", ModeFlag.STABILIZE_ENABLED in mode, "stabilized on", "stabilized off"
        )
        self._record_flag("mission/guided", ModeFlag.GUIDED_ENABLED in mode, "guided on", "guided off")
        self._record_flag(
            "mission/manual", ModeFlag.MANUAL_INPUT_ENABLED in mode, "manual on", "manual off"
        )
        if armed:
            self.has_been_armed = True

        if self.vehicle_type != vehicle_type:
            if self.vehicle_type is not None:
                self.log.warning(
                    "changes type from %s to %s",
                    vehicle_type_name(self.vehicle_type),
                    vehicle_type_name(vehicle_type),
                )
            self.vehicle_type = vehicle_type

        if self.autopilot_type != autopilot:
            if self.autopilot_type is not None:
                self.log.warning(
                    "changes autopilot from %s to %s",
                    autopilot_name(self.autopilot_type),
                    autopilot_name(autopilot),
                )
            self.autopilot_type = autopilot

    def track_traffic(self, length_bytes: int, msgid: int, outcome: TrafficOutcome) -> None:
        """
        Account one inbound message.

        Bytes accumulate until the logical time advances; then one throughput
        sample (kbit/s over the elapsed interval) is written and the
        accumulator restarts.
        """
        throughput = self._series("radio/throughput", "kbps")
        self.traffic.record(length_bytes, msgid, outcome)

        if not self.clock.consume_time_update():
            return
        now = self.clock.time
        nbytes = self.traffic.take_pending_bytes()
        last = throughput.last
        interval = now - last[0] if last is not None else 0.0
        if interval <= 0:
            interval = 1.0
        throughput.append(nbytes * 8 / 1024 / interval, now)

    def track_sysperf(self, load: float, bat_v: float, bat_a: float) -> None:
        self._record("computer/autopilot_load", "%", load)
        volt = self._series("power/battery_voltage", "V")
        amps = self._series("power/battery_current", "A")
        if bat_a > 0:
            amps.append(bat_a, self.clock.time)
        if bat_v > 0:
            volt.append(bat_v, self.clock.time)

    def track_ambient(self, temp_degc: float, press_hpa: float) -> None:
        self._record("environment/temperature", "deg C", temp_degc)
        self._record("environment/static pressure", "hPa", press_hpa)

    def track_system_errors(self, counts: Sequence[int]) -> None:
        for k, count in enumerate(counts, start=1):
            self._record(f"system/error count #{k}", "AP-specific", count, "uint")

    def track_statustext(self, text: str, severity: int) -> None:
        self._event("system/statustext", "string").append(text, self.clock.time)
        self._record("system/statustext_severity", "int", severity, "uint")

    def track_system_sensors(self, present: int, enabled: int, health: int) -> None:
        self._record("system/sensors present", "MAV_SYS_STATUS_SENSOR", present, "uint")
        self._record("system/sensors enabled", "MAV_SYS_STATUS_SENSOR", enabled, "uint")
        self._record("system/sensors health", "MAV_SYS_STATUS_SENSOR", health, "uint")

    # ---- flight state ----
    def track_flightperf(
        self,
        airspeed_ms: float,
        groundspeed_ms: float,
        alt_msl_m: float,
        climb_ms: float,
        throttle_percent: float,
    ) -> None:
        # alt_msl_m of this message switches between GND and MSL datum; not recorded
        self._record("airstate/airspeed", "m/s", airspeed_ms)
        self._record("airstate/groundspeed", "m/s", groundspeed_ms)
        self._record("airstate/climb", "m/s", climb_ms)
        self._record("airstate/throttle", "%", throttle_percent)

    def track_paths(
        self, lat: float, lon: float, alt_rel_m: float, alt_msl_m: float, heading_deg: float
    ) -> None:
        self._record("airstate/lat", "deg", lat, "double")
        self._record("airstate/lon", "deg", lon, "double")
        self._record("airstate/alt GND", "m", alt_rel_m)
        self._record("airstate/alt MSL", "m", alt_msl_m)
        self._record_heading("airstate/heading", heading_deg)

    def track_attitude(self, rpy: Sequence[float], rates: Sequence[float]) -> None:
        """Attitude in rad and body rates in rad/s, stored in degrees."""
        for axis, angle, rate in zip(("roll", "pitch", "yaw"), rpy, rates):
            self._record(f"airstate/angles/{axis}", "deg", math.degrees(angle))
            self._record(f"airstate/rate/{axis} rate", "deg/s", math.degrees(rate))

    def track_speed(self, v: Sequence[float]) -> None:
        for axis, value in zip(("vx", "vy", "vz"), v):
            self._record(f"airstate/speed/{axis}", "m/s", value)

    def track_nav(
        self,
        nav_roll_deg: float,
        nav_pitch_deg: float,
        nav_bearing_deg: float,
        target_bearing_deg: float,
        wp_dist_m: float,
        err_alt_m: float,
        err_airspeed_ms: float,
        err_xtrack_m: float,
    ) -> None:
        self._record("navigation/nav roll", "deg", nav_roll_deg)
        self._record("navigation/nav pitch", "deg", nav_pitch_deg)
        self._record_heading("navigation/nav bearing", nav_bearing_deg)
        self._record_heading("navigation/target bearing", target_bearing_deg)
        self._record("navigation/dist waypoint", "m", wp_dist_m)
        self._record("navigation/error altitude", "m", err_alt_m)
        self._record("navigation/error airspeed", "m/s", err_airspeed_ms)
        self._record("navigation/error x-track", "m", err_xtrack_m)

    # ---- GPS ----
    def track_gps_position(
        self,
        lat: float,
        lon: float,
        alt_wgs84_m: float,
        hdop: float,
        vdop: float,
        speed_ms: float,
        ground_course_deg: float,
    ) -> None:
        self._record("GPS/lat", "deg", lat, "double")
        self._record("GPS/lon", "deg", lon, "double")
        self._record("GPS/alt WGS84", "m", alt_wgs84_m)
        self._record("GPS/hdop", "m", hdop)
        self._record("GPS/vdop", "m", vdop)
        self._record("GPS/ground speed", "m/s", speed_ms)
        self._record_heading("GPS/ground course", ground_course_deg)

    def track_gps_fix(self, n_sat: int, fix_type: int) -> None:
        self._record("GPS/num sat", "", n_sat, "uint")
        fix = self._series("GPS/fix type", "", "uint")
        if fix_type < 255:
            fix.append(fix_type, self.clock.time)

    # ---- IMU ----
    def track_imu(
        self,
        index: int,
        acc_mg: Sequence[int],
        gyr_mrads: Sequence[int],
        mag_mgauss: Sequence[int],
    ) -> None:
        """Raw IMU triads in milli-units, stored as g, rad/s and gauss."""
        root = f"IMU{index}"
        for axis, acc, gyr, mag in zip("xyz", acc_mg, gyr_mrads, mag_mgauss):
            self._record(f"{root}/acc/acc {axis}", "g", acc / 1000.0)
            self._record(f"{root}/gyro/omg {axis}", "rad/s", gyr / 1000.0)
            self._record(f"{root}/magnetic/mag {axis}", "G", mag / 1000.0)

    def track_imu_highres(
        self,
        *,
        acc: Sequence[float] | None = None,
        gyr: Sequence[float] | None = None,
        mag: Sequence[float] | None = None,
        temperature_degc: float | None = None,
        pressure_abs_mbar: float | None = None,
        pressure_alt_m: float | None = None,
        pressure_diff_mbar: float | None = None,
    ) -> None:
        """High resolution IMU fields; only the fields that are given are recorded."""
        triads = (
            (acc, "IMU-highres/acc/acc", "m/s/s"),
            (gyr, "IMU-highres/gyro/omg", "rad/s"),
            (mag, "IMU-highres/mag/field", "G"),
        )
        for xyz, prefix, unit in triads:
            if xyz is None:
                continue
            for axis, value in zip("xyz", xyz):
                self._record(f"{prefix} {axis}", unit, value)

        scalars = (
            (temperature_degc, "IMU-highres/temperature", "deg C"),
            (pressure_abs_mbar, "IMU-highres/pressure abs", "mbar"),
            (pressure_alt_m, "IMU-highres/pressure altitude", "m"),
            (pressure_diff_mbar, "IMU-highres/pressure diff", "mbar"),
        )
        for value, path, unit in scalars:
            if value is not None:
                self._record(path, unit, value)

    # ---- mission ----
    def track_mission_current(self, seq: int) -> None:
        self._record("mission/current seq", "item id", seq, "uint")

    def track_mission_item(
        self,
        target_system: int,
        target_component: int,
        seq: int,
        frame: int,
        command: int,
        current: int,
        autocontinue: int,
        params: Sequence[float],
        x: float,
        y: float,
        z: float,
    ) -> None:
        self._record("mission/target system id", "item id", target_system, "uint")
        self._record("mission/component id", "item id", target_component, "uint")
        self._record("mission/seq", "item id", seq, "uint")
        self._record("mission/frame", "MAV_FRAME enum", frame, "uint")
        self._record("mission/command", "MAV_CMD enum", command, "uint")
        self._record("mission/current", "bool", current, "uint")
        self._record("mission/autocontinue", "", autocontinue, "uint")
        for k, value in enumerate(params[:4], start=1):
            self._record(f"mission/param{k}", "MAV_CMD enum", value)
        self._record("mission/x", "local: x pos. global: latitude", x)
        self._record("mission/y", "local: y pos. global: longitude", y)
        self._record("mission/z", "local: z pos. global: alt (rel. or abs.)", z)

    # ---- radio / RC / actuators ----
    def track_rc(self, channels: Sequence[int]) -> None:
        for k, value in enumerate(channels, start=1):
            self._record(f"rc/channel_{k}", "us", value, "uint")

    def track_actuators(self, servo_raw: Sequence[int]) -> None:
        for k, value in enumerate(servo_raw, start=1):
            self._record(f"actuators/servo_{k}", "us", value, "uint")

    def track_radio(
        self,
        rssi: int,
        noise: int,
        rx_errors: int,
        rx_errors_fixed: int,
        txbuf_percent: int,
        remote_rssi: int,
        remote_noise: int,
    ) -> None:
        self._record("radio/RSSI", "", rssi, "uint")
        self._record("radio/noise", "", noise, "uint")
        self._record("radio/rx errors", "", rx_errors, "uint")
        self._record("radio/fixed rx errors", "", rx_errors_fixed, "uint")
        self._record("radio/tx buffer", "%", txbuf_percent, "uint")
        self._record("radio/remote RSSI", "", remote_rssi, "uint")
        self._record("radio/remote noise", "", remote_noise, "uint")

    def track_radio_rssi(self, rssi: int) -> None:
        self._record("radio/RSSI", "", rssi, "uint")

    def track_radio_droprate(self, percent: float) -> None:
        self._record("radio/overall drop rate", "%", percent)

    def track_power(self, vcc: float, vservo: float, flags: int) -> None:
        self._record("power/Vcc", "V", vcc)
        self._record("power/Vservo", "V", vservo)
        self._record("power/flags", "MAV_POWER_STATUS", flags, "uint")

# mavtelemetry/postprocess/glide.py
from __future__ import annotations

import logging

import numpy as np

from ..core.registry import Registry
from ..core.timeseries import TimeSeries
from ..core.config import SystemConfig

logger = logging.getLogger(__name__)

# field name patterns, matched case-insensitively against full paths
PN, PE, PD = r"\bPN\b", r"\bPE\b", r"\bPD\b"
ROLL = r"\broll\b"
PITCH = r"\bpitch\b"
YAW = r"\byaw\b"
ACCX = r"\baccx\b"
WIND_EAST, WIND_NORTH = r"\bVWE\b", r"\bVWN\b"
TRUE_AIRSPEED = r"\btruespeed\b"
VEL_EAST, VEL_NORTH = r"\bNKF1/VE\b", r"\bNKF1/VN\b"
GPS_SPEED = r"\bGPS/Spd\b"
SINK = r"\bVD\b"
GPS_SINK = r"\bGPS/VZ\b"

DISTANCE_PATH = "glideperf/cum. horz. dist."
GROUNDSPEED_PATH = "glideperf/groundspeed"
GLIDE_RATIO_PATH = "glideperf/glide ratio"
GLIDE_RATIO_AVG_PATH = "glideperf/glide ratio 5sec avg"
WIND_DIR_PATH = "glideperf/wind direction"
WIND_SPEED_PATH = "glideperf/wind speed"
WIND_REL_PATH = "glideperf/relative wind angle"
HEAD_WIND_PATH = "glideperf/head wind"
AIRSPEED_EST_PATH = "glideperf/airspeed estimate"

Log = logging.Logger | logging.LoggerAdapter


def angle360(deg):
    """Wrap angles into [0, 360)."""
    return np.mod(deg, 360.0)


def wind_direction(east, north):
    """
    Direction the wind comes from, aeronautic convention (0 = from north).

    Inputs are the velocity components the wind blows towards:
    (0, -4) -> 0, (4, 0) -> 270, (0, 4) -> 180, (-4, 0) -> 90.
    """
    return angle360(np.degrees(np.arctan2(-np.asarray(east, dtype=np.float64),
                                          -np.asarray(north, dtype=np.float64))))


def relative_wind_angle(winddir_deg, yaw_deg):
    """
    Angle (deg, 0..180) between heading and the direction the wind blows to.

    0 means pure tail wind, 180 pure head wind.
    """
    inv = np.radians(angle360(np.asarray(winddir_deg) - 180.0))
    yaw = np.radians(angle360(np.asarray(yaw_deg)))
    c = np.cos(inv) * np.cos(yaw) + np.sin(inv) * np.sin(yaw)
    return np.degrees(np.arccos(np.clip(c, -1.0, 1.0)))


def _derived(registry: Registry, path: str, unit: str, epoch: int) -> TimeSeries:
    out = registry.get_or_create(path, TimeSeries, unit=unit, dtype="double")
    out.derived = True
    out.clear()
    out.epoch_data_start = epoch
    return out


def glide_distance(
    registry: Registry,
    config: SystemConfig | None = None,
    log: Log = logger,
) -> bool:
    """Cumulative horizontal distance from north/east/down positions."""
    px = registry.find_pattern(PN, TimeSeries)
    py = registry.find_pattern(PE, TimeSeries)
    pz = registry.find_pattern(PD, TimeSeries)
    if px is None or py is None or pz is None or not px.is_present():
        log.info("postproc/glideperf: no position data, distance skipped")
        return False
    if not py.is_present():
        log.warning("postproc/glideperf: failed getting position data")
        return False

    dist = _derived(registry, DISTANCE_PATH, "m", px.epoch_data_start)
    t, x = px.to_numpy()
    y = py.sample_at(t)
    steps = np.hypot(np.diff(x.astype(np.float64)), np.diff(y))
    dist.extend(t, np.concatenate(([0.0], np.cumsum(steps))))
    return True


def _fuse_groundspeed(registry: Registry, log: Log) -> TimeSeries | None:
    ve = registry.find_pattern(VEL_EAST, TimeSeries)
    vn = registry.find_pattern(VEL_NORTH, TimeSeries)
    if ve is None or vn is None or not ve.is_present() or not vn.is_present():
        return None
    fused = _derived(registry, GROUNDSPEED_PATH, "VE and VN", ve.epoch_data_start)
    t, east = ve.to_numpy()
    fused.extend(t, np.hypot(east.astype(np.float64), vn.sample_at(t)))
    return fused


def _with_range(series: TimeSeries | None, min_range: float) -> TimeSeries | None:
    if series is None or not series.is_present():
        return None
    return series if series.value_range() > min_range else None


def glide_performance(
    registry: Registry,
    config: SystemConfig | None = None,
    log: Log = logger,
) -> bool:
    """
    Glide ratio from sink rate and airspeed during stabilized flight.

    Stabilized means no significant energy exchange with kinetic or potential
    stores: airspeed above the minimum, moderate pitch and roll and small
    longitudinal acceleration. The ratio is corrected for the lift lost in
    turns by dividing by cos(roll). With wind estimates the wind direction,
    speed, relative angle and head wind are derived as well, and airspeed is
    reconstructed from ground speed.
    """
    cfg = config or SystemConfig()

    roll = registry.find_pattern(ROLL, TimeSeries)
    pitch = registry.find_pattern(PITCH, TimeSeries)
    accx = registry.find_pattern(ACCX, TimeSeries)

    wind_e = registry.find_pattern(WIND_EAST, TimeSeries)
    wind_n = registry.find_pattern(WIND_NORTH, TimeSeries)
    yaw = registry.find_pattern(YAW, TimeSeries)
    have_wind = all(s is not None and s.is_present() for s in (wind_e, wind_n, yaw))

    airspeed = None
    candidate = registry.find_pattern(TRUE_AIRSPEED, TimeSeries)
    if candidate is not None:
        airspeed = _with_range(candidate, cfg.glide_min_speed)
        if airspeed is None:
            log.warning(
                "postproc/glideperf: ignoring airspeed '%s' because of low variance",
                candidate.full_path,
            )

    gspeed = _fuse_groundspeed(registry, log)
    if gspeed is None:
        gspeed = _with_range(registry.find_pattern(GPS_SPEED, TimeSeries), cfg.glide_min_speed)

    sink = registry.find_pattern(SINK, TimeSeries) or registry.find_pattern(GPS_SINK, TimeSeries)

    for label, series in (("roll angle", roll), ("acc x", accx), ("pitch angle", pitch), ("sink speed", sink)):
        if series is None:
            log.error("postproc/glideperf: %s not found in data", label)
        else:
            log.info("postproc/glideperf: using %s '%s'", label, series.full_path)
    if gspeed is not None:
        log.info("postproc/glideperf: using groundspeed '%s'", gspeed.full_path)
    if airspeed is not None:
        log.info("postproc/glideperf: using airspeed '%s'", airspeed.full_path)
    elif gspeed is None:
        log.error("postproc/glideperf: neither airspeed nor groundspeed found in data")
    elif have_wind:
        log.info("postproc/glideperf: airspeed is reconstructed from groundspeed and wind estimates.")
    else:
        log.warning(
            "postproc/glideperf: airspeed not found, but groundspeed without wind estimates. "
            "Results may be bogus."
        )
    if have_wind:
        log.info("postproc/glideperf: using wind '%s' and related", wind_e.full_path)

    if (airspeed is None and gspeed is None) or pitch is None or roll is None or sink is None or accx is None:
        return False

    epoch = sink.epoch_data_start
    glide = _derived(registry, GLIDE_RATIO_PATH, "ratio", epoch)
    glide_avg = _derived(registry, GLIDE_RATIO_AVG_PATH, "ratio", epoch)

    airspeed_est = None
    if have_wind:
        tw, east = wind_e.to_numpy()
        east = east.astype(np.float64)
        north = wind_n.sample_at(tw)
        winddir = wind_direction(east, north)
        windspd = np.hypot(east, north)
        windrel = relative_wind_angle(winddir, yaw.sample_at(tw))
        headwind = -np.cos(np.radians(windrel)) * windspd

        for path, unit, values in (
            (WIND_DIR_PATH, "degree, coming from (aeronautic convention)", winddir),
            (WIND_SPEED_PATH, "same units as VWE and VWN", windspd),
            (WIND_REL_PATH, "degree between yaw angle and wind direction", windrel),
            (HEAD_WIND_PATH, "same units as VWE and VWN", headwind),
        ):
            _derived(registry, path, unit, epoch).extend(tw, values)

        if gspeed is not None:
            # estimated even when an airspeed sensor exists, for comparison
            airspeed_est = _derived(registry, AIRSPEED_EST_PATH, "same units as VWE and VWN", epoch)
            airspeed_est.extend(tw, gspeed.sample_at(tw) + headwind)

    if airspeed is not None:
        speed_source = airspeed
    elif airspeed_est is not None:
        speed_source = airspeed_est
    else:
        speed_source = gspeed

    t, sink_rate = sink.to_numpy()
    sink_rate = sink_rate.astype(np.float64)
    speed = speed_source.sample_at(t)
    pitch_at = pitch.sample_at(t)
    roll_at = roll.sample_at(t)
    accx_at = accx.sample_at(t)

    stabilized = (
        (sink_rate > 0)
        & (speed > cfg.glide_min_speed)
        & (np.abs(pitch_at) < cfg.glide_max_pitch_deg)
        & (np.abs(roll_at) < cfg.glide_max_roll_deg)
        & (np.abs(accx_at) < cfg.glide_max_accx)
    )
    if stabilized.any():
        ratio = speed[stabilized] / sink_rate[stabilized]
        ratio = ratio / np.cos(np.radians(np.abs(roll_at[stabilized])))
        glide.extend(t[stabilized], ratio)

        best = int(np.argmax(ratio))
        if ratio[best] > 0:
            log.info(
                "postproc/glideperf: Estimated max. A/C glide ratio of %.2f at speed %.2f",
                ratio[best],
                speed[stabilized][best],
            )

    glide.moving_average(cfg.glide_avg_window_s, into=glide_avg)
    return True

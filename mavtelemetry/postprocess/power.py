# mavtelemetry/postprocess/power.py
from __future__ import annotations

import logging

import numpy as np

from ..core.registry import Registry
from ..core.timeseries import TimeSeries
from ..core.config import SystemConfig

logger = logging.getLogger(__name__)

VOLTAGE_PATH = "power/battery_voltage"
CURRENT_PATH = "power/battery_current"

POWER_PATH = "power/power"
CONSUMPTION_PATH = "power/inst. consumption"
CHARGE_PATH = "power/inst. charge"
CUM_CONSUMPTION_PATH = "power/cum. consumption"
CUM_CHARGE_PATH = "power/cum. charge"

SECONDS_PER_HOUR = 3600.0


def trapezoid_steps(time: np.ndarray, values: np.ndarray) -> np.ndarray:
    """
    Per-sample integral increments by the trapezoidal rule.

    The first increment is 0, increment k covers [t_{k-1}, t_k].
    """
    t = np.asarray(time, dtype=np.float64)
    f = np.asarray(values, dtype=np.float64)
    steps = np.zeros(t.size)
    if t.size > 1:
        steps[1:] = np.diff(t) * (f[1:] + f[:-1]) / 2.0
    return steps


def power_stats(
    registry: Registry,
    config: SystemConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> bool:
    """Power, charge and consumption (instantaneous and cumulated) from battery V/A."""
    volt = registry.find(VOLTAGE_PATH)
    amps = registry.find(CURRENT_PATH)
    if not isinstance(volt, TimeSeries) or not isinstance(amps, TimeSeries):
        log.info("postproc/powerstats: battery voltage or current missing, skipped")
        return False
    if not volt.is_present() or not amps.is_present():
        log.info("postproc/powerstats: battery voltage or current empty, skipped")
        return False
    if volt.epoch_data_start != amps.epoch_data_start:
        log.warning("postproc/powerstats: cannot work on unsync'd data.")
        return False
    epoch = amps.epoch_data_start

    def derived(path: str, unit: str) -> TimeSeries:
        out = registry.get_or_create(path, TimeSeries, unit=unit, dtype="double")
        out.derived = True
        out.clear()
        out.epoch_data_start = epoch
        return out

    power = derived(POWER_PATH, "W")
    consumption = derived(CONSUMPTION_PATH, "Ws")
    charge = derived(CHARGE_PATH, "As")
    cum_consumption = derived(CUM_CONSUMPTION_PATH, "Wh")
    cum_charge = derived(CUM_CHARGE_PATH, "Ah")

    # power at the voltage samples
    tv, v = volt.to_numpy()
    watts = v.astype(np.float64) * amps.sample_at(tv)
    power.extend(tv, watts)

    ta, a = amps.to_numpy()
    charge_as = trapezoid_steps(ta, a)
    charge.extend(ta, charge_as)
    cum_charge.extend(ta, np.cumsum(charge_as) / SECONDS_PER_HOUR)

    consumption_ws = trapezoid_steps(tv, watts)
    consumption.extend(tv, consumption_ws)
    cum_consumption.extend(tv, np.cumsum(consumption_ws) / SECONDS_PER_HOUR)

    log.info("postproc/powerstats: DONE.")
    return True

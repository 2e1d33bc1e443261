# mavtelemetry/postprocess/flightbook.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.channel import EventLog, Parameter
from ..core.registry import Registry
from ..core.timeseries import TimeSeries
from ..core.config import SystemConfig

logger = logging.getLogger(__name__)

ALTITUDE_PATH = "airstate/alt GND"
THROTTLE_PATH = "airstate/throttle"

EVENTS_PATH = "flightbook/takeoff_landing"
NUM_FLIGHTS_PATH = "flightbook/number flights"
FLIGHT_TIME_PATH = "flightbook/total flight time"
FIRST_TAKEOFF_PATH = "flightbook/first takeoff"
LAST_LANDING_PATH = "flightbook/last landing"


@dataclass(slots=True)
class FlightBook:
    """Result of one flight-book pass (relative times in seconds)."""
    events: list[tuple[float, str]]
    num_flights: int = 0
    flight_time: float = 0.0
    first_takeoff: float = 0.0
    last_landing: float = 0.0


def detect_flights(
    time, altitude, throttle, *, min_alt: float = 1.0, min_throttle: float = 20.0
) -> FlightBook:
    """
    Walk altitude samples in time order; flying means altitude above
    `min_alt` and throttle above `min_throttle` (percent).
    """
    book = FlightBook(events=[])
    flying = False
    t_takeoff = 0.0
    for t, alt, thr in zip(time, altitude, throttle):
        seems_flying = bool(alt > min_alt and thr > min_throttle)
        if seems_flying and not flying:
            flying = True
            book.events.append((float(t), "takeoff"))
            book.num_flights += 1
            if book.num_flights == 1:
                book.first_takeoff = float(t)
            t_takeoff = float(t)
        elif not seems_flying and flying:
            flying = False
            book.events.append((float(t), "landing"))
            book.last_landing = float(t)
            book.flight_time += float(t) - t_takeoff
    return book


def flightbook(
    registry: Registry,
    config: SystemConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> bool:
    """Number of flights, total flight time, first takeoff and last landing."""
    config = config or SystemConfig()
    alt = registry.find(ALTITUDE_PATH)
    throttle = registry.find(THROTTLE_PATH)
    if not isinstance(alt, TimeSeries) or not isinstance(throttle, TimeSeries):
        log.info("postproc/flightbook: altitude or throttle missing, skipped")
        return False
    if not alt.is_present() or not throttle.is_present():
        log.info("postproc/flightbook: altitude or throttle empty, skipped")
        return False
    if alt.epoch_data_start != throttle.epoch_data_start:
        log.warning("postproc/flightbook: cannot work on unsync'd data.")
        return False
    epoch = alt.epoch_data_start

    events = registry.get_or_create(EVENTS_PATH, EventLog)
    num_flights = registry.get_or_create(NUM_FLIGHTS_PATH, Parameter)
    flight_time = registry.get_or_create(FLIGHT_TIME_PATH, Parameter, unit="s")
    first_takeoff = registry.get_or_create(FIRST_TAKEOFF_PATH, Parameter, unit="[time epoch]")
    last_landing = registry.get_or_create(LAST_LANDING_PATH, Parameter, unit="[time epoch]")
    # may run several times, e.g. after merges
    for out in (events, num_flights, flight_time, first_takeoff, last_landing):
        out.derived = True
        out.clear()
        out.epoch_data_start = epoch

    t, altitude = alt.to_numpy()
    book = detect_flights(
        t,
        altitude,
        throttle.sample_at(t),
        min_alt=config.flight_min_alt,
        min_throttle=config.flight_min_throttle,
    )
    for when, label in book.events:
        events.append(label, when)
    num_flights.set(book.num_flights)
    flight_time.set(book.flight_time)
    first_takeoff.set(book.first_takeoff)
    last_landing.set(book.last_landing)

    log.info("postproc/flightbook: DONE.")
    return True

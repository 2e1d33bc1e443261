# mavtelemetry/postprocess/__init__.py
"""
Derived-metric passes.

Each pass takes (registry, config, log), clears and recomputes its own
derived channels, and returns whether it produced output.
"""

from .timing import repair_timing
from .flightbook import flightbook, detect_flights, FlightBook
from .power import power_stats, trapezoid_steps
from .glide import glide_distance, glide_performance, wind_direction, relative_wind_angle
from .pipeline import PIPELINE, run_pipeline


__all__ = [
    "repair_timing",
    "flightbook",
    "detect_flights",
    "FlightBook",
    "power_stats",
    "trapezoid_steps",
    "glide_distance",
    "glide_performance",
    "wind_direction",
    "relative_wind_angle",
    "PIPELINE",
    "run_pipeline",
]

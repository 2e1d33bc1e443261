# mavtelemetry/system/__init__.py
"""
Per-vehicle state on top of the core data model.

- System: registry + clock + traffic counters of one vehicle; ingestion,
  merge, deep copy, teardown, postprocessing and summary
- TimeSynchronizer: relative-to-absolute time reconciliation
- TrafficSummary: protocol traffic counters
- SystemLogger: logging adapter tagging every record with the system id
"""

from .clock import ClockUpdate, TimeSynchronizer, is_absolute_time, format_epoch
from .ingest import (
    IngestMixin,
    ModeFlag,
    VEHICLE_TYPES,
    AUTOPILOT_TYPES,
    SYSTEM_STATES,
    vehicle_type_name,
    autopilot_name,
)
from .log import SystemLogger
from .summary import format_summary, seconds_to_timestr, epoch_to_datetime
from .system import System
from .traffic import TrafficOutcome, TrafficSummary


__all__ = [
    # system
    "System",
    "SystemLogger",
    "format_summary",
    "seconds_to_timestr",
    "epoch_to_datetime",

    # time
    "TimeSynchronizer",
    "ClockUpdate",
    "is_absolute_time",
    "format_epoch",

    # ingestion
    "IngestMixin",
    "ModeFlag",
    "VEHICLE_TYPES",
    "AUTOPILOT_TYPES",
    "SYSTEM_STATES",
    "vehicle_type_name",
    "autopilot_name",
    "TrafficOutcome",
    "TrafficSummary",
]

# mavtelemetry/core/__init__.py
"""
Core domain objects for mavtelemetry.

This module defines the per-vehicle data model:
- TimeSeries: appendable (time, value) samples of a numeric type
- EventLog: time-stamped discrete labels
- Parameter: a single scalar without time axis
- DataGroup: namespace node owning subgroups and channels
- Registry: root groups + flat path index, the only place channels are
  created, merged and destroyed

The core layer is independent from protocol decoding and presentation.
"""

from .timeseries import TimeSeries, DTYPES
from .channel import Channel, EventLog, Parameter
from .group import DataGroup
from .registry import Registry, AnyChannel, split_path
from .metadata import ChannelMeta
from .config import SystemConfig, load_config
from .exceptions import (
    CoreError,
    InvalidTimeSeries,
    InvalidChannel,
    InvalidPath,
    InvalidConfig,
    ChannelTypeMismatch,
    MergeConflict,
    ChannelNotFound,
    GroupNotFound,
)


__all__ = [
    # channels
    "Channel",
    "TimeSeries",
    "EventLog",
    "Parameter",
    "AnyChannel",
    "DTYPES",

    # tree
    "DataGroup",
    "Registry",
    "split_path",

    # metadata
    "ChannelMeta",

    # configuration
    "SystemConfig",
    "load_config",

    # exceptions
    "CoreError",
    "InvalidTimeSeries",
    "InvalidChannel",
    "InvalidPath",
    "InvalidConfig",
    "ChannelTypeMismatch",
    "MergeConflict",
    "ChannelNotFound",
    "GroupNotFound",
]

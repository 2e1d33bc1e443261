# mavtelemetry/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error of the telemetry data model."""


# ---- construction / validation ----
class InvalidTimeSeries(CoreError):
    """Bad dtype, non-finite timestamp or out-of-range value for a TimeSeries."""


class InvalidChannel(CoreError):
    """Bad channel name or metadata."""


class InvalidPath(CoreError):
    """A registry path that cannot be split into groups and a channel name."""


class InvalidConfig(CoreError):
    """Unknown key, wrong type or out-of-range value in a SystemConfig."""


class ChannelTypeMismatch(CoreError):
    """The path is taken by a channel of another variant."""


class MergeConflict(CoreError):
    """A channel refused to merge another one into itself."""


# ---- lookup (dict-like APIs, so also KeyError) ----
class ChannelNotFound(CoreError, KeyError):
    """No channel under the requested path or name."""


class GroupNotFound(CoreError, KeyError):
    """No group under the requested name."""

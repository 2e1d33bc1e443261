# mavtelemetry/system/clock.py
from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum

from ..core.registry import Registry

logger = logging.getLogger(__name__)


class ClockUpdate(IntEnum):
    """Outcome of a clock advance."""
    BACKWARD_JUMP = -1
    ACCEPTED = 0
    FORWARD_JUMP = 1


def is_absolute_time(timestamp_usec: int) -> bool:
    """
    Heuristic: a timestamp that falls after the year 2000 is wall-clock time,
    anything earlier is a relative/monotonic time since boot.
    """
    try:
        when = datetime.fromtimestamp(timestamp_usec / 1e6, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return False
    return when.year > 2000


def format_epoch(epoch_usec: int) -> str:
    try:
        when = datetime.fromtimestamp(epoch_usec / 1e6, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return f"<{epoch_usec} us>"
    return when.strftime("%Y-%m-%d %H:%M:%S UTC")


@dataclass
class TimeSynchronizer:
    """
    Clock reconciliation state of one system.

    Decoded messages carry relative timestamps (usually time since boot).
    `advance` turns them into the current logical time (seconds) and refuses
    implausible jumps; `record_reference` collects (relative, absolute) pairs
    from messages that also carry wall-clock time. `resolve_offset` finally
    anchors every channel of a registry to one absolute epoch.

    Jumps are checked against the previously accepted time only, so a
    discontinuity that builds up in small steps is accepted.
    """

    max_back_jump_s: float = 5.0
    max_fwd_jump_s: float = 100.0
    log: logging.Logger | logging.LoggerAdapter = field(default=logger, repr=False, compare=False)

    time: float = 0.0
    time_min: float = math.inf
    time_max: float = -math.inf
    time_valid: bool = False
    have_time_update: bool = False
    references: list[tuple[int, int]] = field(default_factory=list)
    offset_guess_usec: int = 0
    offset_usec: int = 0

    def advance(self, relative_usec: int, allow_jumps: bool = False) -> ClockUpdate:
        candidate = relative_usec / 1e6

        diff = 0.0
        if self.time_valid:
            diff = candidate - self.time
        else:
            self.time_valid = True

        if diff < -self.max_back_jump_s and not allow_jumps:
            self.log.warning("ignoring timestamp that is too old: %.3f s", diff)
            return ClockUpdate.BACKWARD_JUMP
        if diff > self.max_fwd_jump_s and not allow_jumps:
            # some logs do carry correct huge jumps (late log start, several
            # flights without reconnect); callers can pass allow_jumps for those
            self.log.warning("ignoring timestamp that fast-forwarded by %.3f s", diff)
            return ClockUpdate.FORWARD_JUMP

        self.time_min = min(self.time_min, candidate)
        self.time_max = max(self.time_max, candidate)
        self.time = candidate
        self.have_time_update = True
        return ClockUpdate.ACCEPTED

    def consume_time_update(self) -> bool:
        """Return whether time advanced since the last call, and reset the flag."""
        had = self.have_time_update
        self.have_time_update = False
        return had

    def record_reference(
        self, relative_usec: int, epoch_usec: int, allow_jumps: bool = False
    ) -> ClockUpdate:
        result = self.advance(relative_usec, allow_jumps)
        if epoch_usec > 0:
            self.references.append((int(relative_usec), int(epoch_usec)))
        return result

    def guess_offset(self, relative_usec: int, epoch_usec: int) -> None:
        """Remember a fallback offset for logs without in-stream time references."""
        if epoch_usec > 0:
            self.offset_guess_usec = int(epoch_usec) - int(relative_usec)

    def resolve_offset(self, registry: Registry | None = None) -> int:
        """
        Determine the absolute offset and stamp it on every channel.

        The offset is the mean of (absolute - relative) over all reference
        pairs, rounded to the microsecond; without references the best guess
        is used and a warning is logged.
        """
        if self.references:
            diffs = [epoch - rel for rel, epoch in self.references]
            total = sum(diffs)
            n = len(diffs)
            # integer rounding keeps large epochs exact
            self.offset_usec = (2 * total + n) // (2 * n)
        else:
            self.offset_usec = self.offset_guess_usec
            self.log.warning(
                "no time reference in the log; making a guess: %s",
                format_epoch(self.offset_usec),
            )

        if registry is not None:
            registry.set_epoch(self.offset_usec)
        return self.offset_usec

    def shift(self, delay_s: float) -> None:
        """
        Move this clock by `delay_s` relative to another one before merging.

        Stored channel data is not touched; only the reference pairs and the
        best guess are adjusted.
        """
        udelay = int(round(delay_s * 1e6))
        self.references = [(rel - udelay, epoch) for rel, epoch in self.references]
        self.offset_guess_usec += udelay

    def absorb(self, other: "TimeSynchronizer") -> None:
        """
        Take over the references and bounds of a clock being merged in.

        When both clocks are resolved, the relative times of `other` are
        moved onto this clock's axis first, the same way merged channels
        are rebased.
        """
        delta = 0
        if self.offset_usec and other.offset_usec:
            delta = other.offset_usec - self.offset_usec
        known = set(self.references)
        incoming = [(rel + delta, epoch) for rel, epoch in other.references]
        self.references.extend(p for p in incoming if p not in known)
        self.time_min = min(self.time_min, other.time_min + delta / 1e6)
        self.time_max = max(self.time_max, other.time_max + delta / 1e6)
        if not self.references and not self.offset_guess_usec:
            self.offset_guess_usec = other.offset_guess_usec

    def copy(self) -> "TimeSynchronizer":
        out = copy.copy(self)
        out.references = list(self.references)
        return out

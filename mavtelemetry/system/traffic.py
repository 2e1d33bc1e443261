# mavtelemetry/system/traffic.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TrafficOutcome(Enum):
    """What the decoder did with an inbound message."""
    INTERPRETED = "interpreted"
    UNINTERPRETED = "uninterpreted"
    ERROR = "error"


@dataclass
class TrafficSummary:
    """Running protocol-traffic counters of one system."""

    num_received: int = 0
    num_interpreted: int = 0
    num_uninterpreted: int = 0
    num_error: int = 0
    total_bytes: int = 0
    pending_bytes: int = 0
    msgids_interpreted: set[int] = field(default_factory=set)
    msgids_uninterpreted: set[int] = field(default_factory=set)

    def record(self, length_bytes: int, msgid: int, outcome: TrafficOutcome) -> None:
        self.pending_bytes += length_bytes
        self.total_bytes += length_bytes
        if outcome is TrafficOutcome.INTERPRETED:
            self.num_interpreted += 1
            self.msgids_interpreted.add(msgid)
        elif outcome is TrafficOutcome.UNINTERPRETED:
            self.num_uninterpreted += 1
            self.msgids_uninterpreted.add(msgid)
        else:
            self.num_error += 1
        self.num_received += 1

    def take_pending_bytes(self) -> int:
        """Bytes accumulated since the last call."""
        nbytes = self.pending_bytes
        self.pending_bytes = 0
        return nbytes

    def copy(self) -> "TrafficSummary":
        return TrafficSummary(
            num_received=self.num_received,
            num_interpreted=self.num_interpreted,
            num_uninterpreted=self.num_uninterpreted,
            num_error=self.num_error,
            total_bytes=self.total_bytes,
            pending_bytes=self.pending_bytes,
            msgids_interpreted=set(self.msgids_interpreted),
            msgids_uninterpreted=set(self.msgids_uninterpreted),
        )

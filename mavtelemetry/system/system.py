# mavtelemetry/system/system.py
from __future__ import annotations

from ..core.channel import Channel
from ..core.config import SystemConfig
from ..core.registry import Registry
from ..postprocess.pipeline import run_pipeline
from .clock import ClockUpdate, TimeSynchronizer
from .ingest import IngestMixin, autopilot_name, vehicle_type_name
from .log import SystemLogger
from .summary import format_summary
from .traffic import TrafficSummary


class System(IngestMixin):
    """
    Everything known about one tracked vehicle.

    Owns the channel registry, the clock, the traffic counters and the
    vehicle classification. Decoded messages first move the clock
    (`advance` / `record_time_reference`) and then call one `track_*`
    operation; after loading, `postprocess` derives the secondary metrics
    and `resolve_offset` anchors all channels to absolute time.

    With `deferred_load` only metadata is expected to be present; the time
    span is then estimated from the clock and the summary is reduced to the
    general section.
    """

    def __init__(
        self,
        sysid: int,
        config: SystemConfig | None = None,
        *,
        deferred_load: bool = False,
    ) -> None:
        self.id = int(sysid)
        self.config = config or SystemConfig()
        self.deferred_load = bool(deferred_load)

        self.log = SystemLogger(self.id)
        self.registry = Registry(self.log)
        self.clock = TimeSynchronizer(
            max_back_jump_s=self.config.max_back_jump_s,
            max_fwd_jump_s=self.config.max_fwd_jump_s,
            log=self.log,
        )
        self.traffic = TrafficSummary()

        self.vehicle_type: int | None = None
        self.autopilot_type: int | None = None
        self.has_been_armed = False

    def __repr__(self) -> str:
        return f"System(id={self.id}, type={self.vehicle_type_name!r}, channels={len(self.registry)})"

    # ---- classification ----
    @property
    def vehicle_type_name(self) -> str:
        return vehicle_type_name(self.vehicle_type)

    @property
    def autopilot_name(self) -> str:
        return autopilot_name(self.autopilot_type)

    # ---- data access ----
    def __getitem__(self, path: str) -> Channel:
        return self.registry[path]

    def __contains__(self, path: object) -> bool:
        return path in self.registry

    def find(self, path: str) -> Channel | None:
        return self.registry.find(path)

    # ---- time ----
    def advance(self, relative_usec: int, allow_jumps: bool = False) -> ClockUpdate:
        return self.clock.advance(relative_usec, allow_jumps)

    def record_time_reference(
        self, relative_usec: int, epoch_usec: int, allow_jumps: bool = False
    ) -> ClockUpdate:
        return self.clock.record_reference(relative_usec, epoch_usec, allow_jumps)

    def guess_time_offset(self, relative_usec: int, epoch_usec: int) -> None:
        self.clock.guess_offset(relative_usec, epoch_usec)

    def shift_time(self, delay_s: float) -> None:
        self.clock.shift(delay_s)

    def resolve_offset(self) -> int:
        return self.clock.resolve_offset(self.registry)

    def time_active_begin(self) -> float | None:
        """First sample of any channel, in epoch seconds."""
        if self.deferred_load:
            if not self.clock.time_valid:
                return None
            return (self.clock.time_min * 1e6 + self.clock.offset_usec) / 1e6
        span = self.registry.time_span_usec()
        return None if span is None else span[0] / 1e6

    def time_active_end(self) -> float | None:
        """Last sample of any channel, in epoch seconds."""
        if self.deferred_load:
            if not self.clock.time_valid:
                return None
            return (self.clock.time_max * 1e6 + self.clock.offset_usec) / 1e6
        span = self.registry.time_span_usec()
        return None if span is None else span[1] / 1e6

    # ---- lifecycle ----
    def copy(self) -> "System":
        """Deep copy; every channel is cloned and registered anew."""
        out = System(self.id, self.config, deferred_load=self.deferred_load)
        out.vehicle_type = self.vehicle_type
        out.autopilot_type = self.autopilot_type
        out.has_been_armed = self.has_been_armed
        out.clock = self.clock.copy()
        out.clock.log = out.log
        out.traffic = self.traffic.copy()
        for channel in self.registry.channels():
            out.registry.insert_or_merge(channel)
        return out

    def close(self) -> None:
        """Delete every channel and empty the tree."""
        self.registry.clear()
        self.log.debug("closed")

    def postprocess(self) -> dict[str, bool]:
        self.log.info("postprocessing %d channels", len(self.registry))
        return run_pipeline(self.registry, self.config, self.log)

    def merge(self, other: "System") -> bool:
        """
        Merge all channels of `other` into this system.

        Channels that cannot be merged are skipped with a warning. When
        anything was added, the postprocessing pipeline runs again and the
        time offset is re-resolved with the combined time references.
        Channels of `other` anchored to another epoch are rebased onto ours.
        """
        epoch = self.clock.offset_usec
        added = 0
        for channel in other.registry.channels():
            candidate = channel
            if epoch and channel.epoch_data_start and channel.epoch_data_start != epoch:
                candidate = channel.clone()
                candidate.rebase(epoch)
            if self.registry.insert_or_merge(candidate):
                added += 1
            else:
                self.log.warning(
                    "skipped data '%s' from system #%d because it could not be merged",
                    channel.full_path,
                    other.id,
                )

        if added:
            self.clock.absorb(other.clock)
            self.has_been_armed = self.has_been_armed or other.has_been_armed
            self.postprocess()
            self.resolve_offset()
        self.log.info("merged %d channels from system #%d", added, other.id)
        return True

    def summary(self) -> str:
        return format_summary(self)

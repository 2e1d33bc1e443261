# mavtelemetry/core/channel.py

from __future__ import annotations

import weakref
from abc import ABC, abstractmethod
from bisect import bisect_right
from typing import TYPE_CHECKING, Any, ClassVar, cast

from .exceptions import InvalidChannel, MergeConflict
from .metadata import ChannelMeta

if TYPE_CHECKING:
    from .group import DataGroup


class Channel(ABC):
    """
    One named container of collected values.

    The concrete variants are TimeSeries, EventLog and Parameter. A channel
    belongs to exactly one DataGroup at a time; `parent` is a weak
    back-reference, the group owns the channel and not the other way round.
    """

    kind: ClassVar[str] = "channel"

    def __init__(
        self,
        name: str,
        *,
        meta: ChannelMeta | None = None,
        derived: bool = False,
        epoch_data_start: int = 0,
        group_path: str = "",
    ) -> None:
        if not isinstance(name, str) or not name.strip():
            raise InvalidChannel("Channel.name must be a non-empty string.")
        if "/" in name:
            raise InvalidChannel(f"Channel.name must not contain '/': {name!r}")
        if meta is None:
            meta = ChannelMeta()
        elif not isinstance(meta, ChannelMeta):
            raise InvalidChannel("Channel.meta must be a ChannelMeta instance.")

        self.name = name.strip()
        self.meta = meta
        self.derived = bool(derived)
        self.epoch_data_start = int(epoch_data_start)
        self.group_path = group_path.strip().strip("/")
        self._parent: weakref.ReferenceType[DataGroup] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.full_path!r}, n={self.n})"

    # ---- identity / ownership ----
    @property
    def full_path(self) -> str:
        if not self.group_path:
            return self.name
        return f"{self.group_path}/{self.name}"

    @property
    def parent(self) -> DataGroup | None:
        return None if self._parent is None else self._parent()

    @parent.setter
    def parent(self, group: DataGroup | None) -> None:
        self._parent = None if group is None else weakref.ref(group)

    @property
    def unit(self) -> str | None:
        return self.meta.unit

    # ---- capability set ----
    @property
    @abstractmethod
    def n(self) -> int: ...

    @property
    def t_start(self) -> float | None:
        return None

    @property
    def t_end(self) -> float | None:
        return None

    def is_present(self) -> bool:
        return self.n > 0

    @property
    def epoch_data_begin(self) -> int:
        t0 = self.t_start
        return self.epoch_data_start if t0 is None else self.epoch_data_start + round(t0 * 1e6)

    @property
    def epoch_data_end(self) -> int:
        t1 = self.t_end
        return self.epoch_data_start if t1 is None else self.epoch_data_start + round(t1 * 1e6)

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def clone(self, name: str | None = None) -> "Channel": ...

    @abstractmethod
    def merge_in(self, other: "Channel") -> None:
        """Merge the samples of `other` into this channel (raises MergeConflict)."""

    def _check_mergeable(self, other: "Channel") -> "Channel":
        if type(other) is not type(self):
            raise MergeConflict(
                f"cannot merge {type(other).__name__} into {type(self).__name__} "
                f"at '{self.full_path}'"
            )
        return other

    def _epoch_shift(self, other: "Channel") -> float:
        """Seconds to add to the times of `other` to put them on our time axis."""
        if self.epoch_data_start and other.epoch_data_start:
            return (other.epoch_data_start - self.epoch_data_start) / 1e6
        return 0.0

    def rebase(self, epoch_usec: int) -> None:
        """Re-anchor to `epoch_usec`; absolute sample times stay where they are."""
        self.epoch_data_start = int(epoch_usec)

    def _copy_header(self, name: str | None) -> dict[str, Any]:
        return dict(
            name=self.name if name is None else name,
            meta=self.meta.copy(),
            derived=self.derived,
            epoch_data_start=self.epoch_data_start,
            group_path=self.group_path,
        )


class EventLog(Channel):
    """Time-stamped discrete labels; consecutive identical labels are collapsed."""

    kind: ClassVar[str] = "event"

    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self._times: list[float] = []
        self._labels: list[str] = []

    @property
    def n(self) -> int:
        return len(self._times)

    @property
    def t_start(self) -> float | None:
        return self._times[0] if self._times else None

    @property
    def t_end(self) -> float | None:
        return self._times[-1] if self._times else None

    @property
    def latest(self) -> str | None:
        return self._labels[-1] if self._labels else None

    def events(self) -> list[tuple[float, str]]:
        return list(zip(self._times, self._labels))

    def append(self, label: str, t: float) -> bool:
        """Add an event; returns False when the latest label is unchanged."""
        label = str(label)
        if self._labels and self._labels[-1] == label:
            return False
        k = bisect_right(self._times, t)
        self._times.insert(k, float(t))
        self._labels.insert(k, label)
        return True

    def clear(self) -> None:
        self._times.clear()
        self._labels.clear()

    def clone(self, name: str | None = None) -> "EventLog":
        out = EventLog(**self._copy_header(name))
        out._times = list(self._times)
        out._labels = list(self._labels)
        return out

    def rebase(self, epoch_usec: int) -> None:
        if self.epoch_data_start and epoch_usec:
            shift = (self.epoch_data_start - int(epoch_usec)) / 1e6
            self._times = [t + shift for t in self._times]
        super().rebase(epoch_usec)

    def merge_in(self, other: Channel) -> None:
        other = cast(EventLog, self._check_mergeable(other))
        shift = self._epoch_shift(other)
        known = set(zip(self._times, self._labels))
        incoming = [(t + shift, label) for t, label in other.events()]
        pairs = self.events() + [p for p in incoming if p not in known]
        pairs.sort(key=lambda p: p[0])

        times: list[float] = []
        labels: list[str] = []
        for t, label in pairs:
            if labels and labels[-1] == label:
                continue
            times.append(t)
            labels.append(label)
        self._times, self._labels = times, labels


class Parameter(Channel):
    """
    A single scalar without time axis.

    Merging uses last-write-wins: an incoming parameter that holds a value
    replaces ours, an empty one leaves ours untouched.
    """

    kind: ClassVar[str] = "param"

    def __init__(self, name: str, value: Any = None, **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self._value = value

    @property
    def n(self) -> int:
        return 0 if self._value is None else 1

    @property
    def value(self) -> Any:
        return self._value

    def set(self, value: Any) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = None

    def clone(self, name: str | None = None) -> "Parameter":
        return Parameter(value=self._value, **self._copy_header(name))

    def merge_in(self, other: Channel) -> None:
        other = cast(Parameter, self._check_mergeable(other))
        if other.is_present():
            self._value = other.value

# mavtelemetry/core/registry.py
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Iterator, TypeVar, Union

from .channel import Channel, EventLog, Parameter
from .exceptions import (
    ChannelNotFound,
    ChannelTypeMismatch,
    CoreError,
    InvalidPath,
    MergeConflict,
)
from .group import DataGroup
from .metadata import ChannelMeta
from .timeseries import TimeSeries

logger = logging.getLogger(__name__)

AnyChannel = Union[TimeSeries, EventLog, Parameter]
C = TypeVar("C", bound=Channel)


def split_path(path: str) -> tuple[list[str], str]:
    """
    Split a slash-delimited path into (group segments, channel name).

    Examples
    --------
    "airstate/angles/roll" -> (["airstate", "angles"], "roll")
    " power/battery_voltage " -> (["power"], "battery_voltage")
    """
    if not isinstance(path, str):
        raise InvalidPath(f"path must be a string, got {type(path).__name__}")
    parts = [p.strip() for p in path.strip().split("/")]
    if len(parts) < 2:
        raise InvalidPath(f"path needs at least one group and a name: {path!r}")
    if any(not p for p in parts):
        raise InvalidPath(f"path contains an empty segment: {path!r}")
    return parts[:-1], parts[-1]


class Registry:
    """
    Owns the root groups and a flat path -> channel index.

    Invariants:
    - every channel in the index is reachable through exactly one tree path,
      and every channel in the tree is in the index under that path
    - no group without subgroups and channels survives a mutation
    All destruction goes through `delete` so both views stay in sync.
    """

    def __init__(self, log: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self.log = log if log is not None else logger
        self._roots: dict[str, DataGroup] = {}
        self._index: dict[str, Channel] = {}

    # ---- dict-like API ----
    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._index))

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and path.strip() in self._index

    def __getitem__(self, path: str) -> Channel:
        try:
            return self._index[path.strip()]
        except KeyError as e:
            raise ChannelNotFound(path) from e

    def keys(self) -> list[str]:
        return sorted(self._index)

    def items(self) -> list[tuple[str, Channel]]:
        return [(k, self._index[k]) for k in sorted(self._index)]

    def channels(self) -> list[Channel]:
        return [self._index[k] for k in sorted(self._index)]

    @property
    def roots(self) -> dict[str, DataGroup]:
        return dict(self._roots)

    def group(self, path: str) -> DataGroup | None:
        parts = [p.strip() for p in path.strip().split("/")]
        node = self._roots.get(parts[0])
        for part in parts[1:]:
            if node is None:
                return None
            node = node.groups.get(part)
        return node

    # ---- tree mutation ----
    def register(self, path: str, channel: Channel) -> Channel:
        """Hook `channel` into the tree under `path`, creating missing groups."""
        group_names, name = split_path(path)
        fullpath = "/".join(group_names + [name])

        # a channel lives under one path only
        if channel.parent is not None and channel.full_path != fullpath:
            self.delete(channel)

        previous = self._index.get(fullpath)
        if previous is not None and previous is not channel:
            self.delete(previous)

        self.log.debug("Data: %s", fullpath)

        root = group_names[0]
        parent = self._roots.get(root)
        if parent is None:
            parent = self._roots[root] = DataGroup(root)
        for part in group_names[1:]:
            node = parent.groups.get(part)
            if node is None:
                node = parent.groups[part] = DataGroup(part, parent=parent)
            parent = node

        channel.name = name
        channel.group_path = "/".join(group_names)
        channel.parent = parent
        parent.channels[name] = channel
        self._index[fullpath] = channel
        return channel

    def unregister(self, channel: Channel) -> None:
        """Detach `channel` from its group and prune groups left empty."""
        group = channel.parent
        if group is None:
            return
        if group.channels.get(channel.name) is not channel:
            return
        del group.channels[channel.name]
        channel.parent = None

        while group is not None:
            parent = group.parent
            if not group.is_empty():
                break
            siblings = parent.groups if parent is not None else self._roots
            if siblings.get(group.name) is group:
                del siblings[group.name]
            group = parent

    def delete(self, channel: Channel) -> None:
        fullpath = channel.full_path
        if self._index.get(fullpath) is channel:
            del self._index[fullpath]
        self.unregister(channel)
        self.log.debug("Deleted: %s", fullpath)

    def clear(self) -> None:
        for channel in list(self._index.values()):
            self.delete(channel)
        self._roots.clear()

    # ---- lookup ----
    def find(self, path: str) -> Channel | None:
        return self._index.get(path.strip())

    def find_all(self, pattern: str, kind: type[C] | None = None) -> list[C]:
        """All channels whose full path matches `pattern` (case-insensitive search)."""
        rx = re.compile(pattern, re.IGNORECASE)
        out = []
        for path in sorted(self._index):
            ch = self._index[path]
            if kind is not None and not isinstance(ch, kind):
                continue
            if rx.search(path):
                out.append(ch)
        return out

    def find_pattern(self, pattern: str, kind: type[C] | None = None) -> C | None:
        """
        First channel (sorted path order) whose full path matches `pattern`.

        Used to locate semantically named fields across differently named logs,
        e.g. r"\\broll\\b" finds "airstate/angles/roll" as well as "ATT/Roll".
        """
        found = self.find_all(pattern, kind)
        return found[0] if found else None

    def require(self, path: str, kind: type[C] = Channel) -> C:  # type: ignore[assignment]
        ch = self.find(path)
        if ch is None:
            raise ChannelNotFound(path)
        if not isinstance(ch, kind):
            raise ChannelTypeMismatch(
                f"'{path}' is a {type(ch).__name__}, expected {kind.__name__}"
            )
        return ch

    def get_or_create(
        self,
        path: str,
        kind: type[C],
        *,
        unit: str | None = None,
        description: str | None = None,
        derived: bool = False,
        **kwargs: Any,
    ) -> C:
        """
        Resolve the channel at `path`, creating it when absent.

        Metadata is attached only at creation; later calls never touch it.
        Extra keyword arguments go to the channel constructor (e.g. dtype).
        """
        existing = self.find(path)
        if existing is not None:
            if not isinstance(existing, kind):
                raise ChannelTypeMismatch(
                    f"'{path}' is a {type(existing).__name__}, expected {kind.__name__}"
                )
            return existing

        _, name = split_path(path)
        channel = kind(
            name,
            meta=ChannelMeta(unit=unit, description=description),
            derived=derived,
            **kwargs,
        )
        self.register(path, channel)
        return channel

    # ---- write path ----
    def insert_or_merge(self, candidate: Channel) -> bool:
        """
        Bring `candidate` into this registry under its own full path.

        A non-empty channel already at that path merges the candidate in; an
        empty placeholder is replaced; otherwise a deep copy is registered.
        Returns False when the merge was refused or the copy failed.
        """
        fullpath = candidate.full_path
        existing = self.find(fullpath)
        if existing is not None and existing.is_present():
            try:
                existing.merge_in(candidate)
            except MergeConflict as e:
                self.log.warning("could not merge '%s': %s", fullpath, e)
                return False
            return True

        if existing is not None:
            self.delete(existing)

        try:
            copied = candidate.clone()
        except CoreError as e:
            self.log.warning("could not copy '%s': %s", fullpath, e)
            return False
        self.register(fullpath, copied)
        return True

    # ---- time anchoring ----
    def set_epoch(self, epoch_usec: int) -> None:
        for ch in self._index.values():
            ch.epoch_data_start = int(epoch_usec)

    def time_span_usec(self) -> tuple[int, int] | None:
        """Absolute (first, last) sample time over all channels with a time axis."""
        timed = [ch for ch in self._index.values() if ch.t_start is not None]
        if not timed:
            return None
        return (
            min(ch.epoch_data_begin for ch in timed),
            max(ch.epoch_data_end for ch in timed),
        )

    def walk(self) -> Iterable[tuple[DataGroup, list[Channel]]]:
        for key in sorted(self._roots):
            yield from self._roots[key].walk()

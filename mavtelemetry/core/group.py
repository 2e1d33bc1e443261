# mavtelemetry/core/group.py
from __future__ import annotations

import weakref
from typing import Iterable, Iterator

from .channel import Channel
from .exceptions import ChannelNotFound, GroupNotFound


class DataGroup:
    """
    A namespace node of the channel tree.

    Design goals:
    - easy access: group["roll"] for channels, group.group("angles") for subgroups
    - single ownership: a group owns its subgroups and channels and only
      weakly references its parent
    - read-only for consumers: mutation goes through the Registry so the flat
      path index and the tree never diverge
    """

    def __init__(self, name: str, parent: DataGroup | None = None) -> None:
        self.name = name
        self.groups: dict[str, DataGroup] = {}
        self.channels: dict[str, Channel] = {}
        self._parent = None if parent is None else weakref.ref(parent)

    def __repr__(self) -> str:
        return f"DataGroup({self.path!r}, groups={len(self.groups)}, channels={len(self.channels)})"

    @property
    def parent(self) -> DataGroup | None:
        return None if self._parent is None else self._parent()

    @property
    def path(self) -> str:
        parts = [self.name]
        node = self.parent
        while node is not None:
            parts.append(node.name)
            node = node.parent
        return "/".join(reversed(parts))

    def is_empty(self) -> bool:
        return not self.groups and not self.channels

    # ---- dict-like API over channels ----
    def __len__(self) -> int:
        return len(self.channels)

    def __iter__(self) -> Iterator[str]:
        return iter(self.channels)

    def __contains__(self, name: object) -> bool:
        return name in self.channels or name in self.groups

    def __getitem__(self, name: str) -> Channel:
        try:
            return self.channels[name]
        except KeyError as e:
            raise ChannelNotFound(name) from e

    def get(self, name: str, default: Channel | None = None) -> Channel | None:
        return self.channels.get(name, default)

    def group(self, name: str) -> DataGroup:
        try:
            return self.groups[name]
        except KeyError as e:
            raise GroupNotFound(name) from e

    # ---- traversal ----
    def walk(self) -> Iterable[tuple[DataGroup, list[Channel]]]:
        """Depth-first (group, channels) pairs, names sorted at each level."""
        yield self, [self.channels[k] for k in sorted(self.channels)]
        for key in sorted(self.groups):
            yield from self.groups[key].walk()

    # ---- derived time bounds ----
    @property
    def t_start(self) -> float | None:
        starts = [ch.t_start for _, chans in self.walk() for ch in chans if ch.t_start is not None]
        return None if not starts else float(min(starts))

    @property
    def t_end(self) -> float | None:
        ends = [ch.t_end for _, chans in self.walk() for ch in chans if ch.t_end is not None]
        return None if not ends else float(max(ends))

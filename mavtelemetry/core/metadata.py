# mavtelemetry/core/metadata.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import InvalidChannel


@dataclass(frozen=True, slots=True)
class ChannelMeta:
    """
    Out-of-band labels of a channel, fixed when the channel is created.

    `unit` is free text ("m/s", "MAV_FRAME enum", ...) and is never checked
    against appended samples. A blank unit is stored as None.
    """
    unit: str | None = None
    description: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.unit is not None:
            if not isinstance(self.unit, str):
                raise InvalidChannel(f"unit must be a string, got {type(self.unit).__name__}")
            object.__setattr__(self, "unit", self.unit.strip() or None)
        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidChannel("attrs must be a dict")

    def format_value(self, value: Any) -> str:
        """'12.6 V', or just '12.6' without a unit."""
        text = f"{value:g}" if isinstance(value, float) else str(value)
        return text if self.unit is None else f"{text} {self.unit}"

    def copy(self) -> "ChannelMeta":
        return ChannelMeta(self.unit, self.description, dict(self.attrs))

# mavtelemetry/core/config.py
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import toml

from .exceptions import InvalidConfig


@dataclass(frozen=True, slots=True)
class SystemConfig:
    """
    Tunables of one tracked system.

    - max_back_jump_s / max_fwd_jump_s: clock jump rejection bounds
    - flight_min_alt / flight_min_throttle: "flying" detection for the flight book
    - glide_*: stabilized-flight gates of the glide performance estimate
    """
    max_back_jump_s: float = 5.0
    max_fwd_jump_s: float = 100.0
    flight_min_alt: float = 1.0
    flight_min_throttle: float = 20.0
    glide_min_speed: float = 5.0
    glide_max_pitch_deg: float = 20.0
    glide_max_roll_deg: float = 45.0
    glide_max_accx: float = 2.0
    glide_avg_window_s: float = 5.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidConfig(f"SystemConfig.{f.name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidConfig(f"SystemConfig.{f.name} must be finite.")
            object.__setattr__(self, f.name, float(value))

        for name in ("max_back_jump_s", "max_fwd_jump_s", "glide_avg_window_s", "glide_min_speed"):
            if getattr(self, name) <= 0:
                raise InvalidConfig(f"SystemConfig.{name} must be positive.")
        if not 0 < self.glide_max_roll_deg < 90:
            raise InvalidConfig("SystemConfig.glide_max_roll_deg must lie in (0, 90).")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SystemConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidConfig(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)


def load_config(path: str | Path) -> SystemConfig:
    """
    Read a SystemConfig from the `[mavtelemetry]` table of a TOML file.

    Missing keys keep their defaults; a missing table yields the defaults.
    """
    try:
        with open(path, "r") as f:
            data = toml.load(f)
    except toml.TomlDecodeError as e:
        raise InvalidConfig(f"cannot parse {path}: {e}") from e

    section = data.get("mavtelemetry", {})
    if not isinstance(section, dict):
        raise InvalidConfig("[mavtelemetry] must be a table.")
    return SystemConfig.from_mapping(section)

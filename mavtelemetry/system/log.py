# mavtelemetry/system/log.py
from __future__ import annotations

import logging
from typing import Any, MutableMapping


class SystemLogger(logging.LoggerAdapter):
    """
    Logger handle owned by one System.

    Every record is prefixed with "#<id>:" and carries the id in
    `record.sysid`, so a handler can route or filter per vehicle.
    """

    def __init__(self, sysid: int, logger: logging.Logger | None = None) -> None:
        super().__init__(logger or logging.getLogger("mavtelemetry.system"), {"sysid": sysid})

    @property
    def sysid(self) -> int:
        return self.extra["sysid"]  # type: ignore[index]

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra or {})
        kwargs["extra"] = extra
        return f"#{self.sysid}: {msg}", kwargs

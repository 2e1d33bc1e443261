# mavtelemetry/postprocess/timing.py
from __future__ import annotations

import logging

from ..core.registry import Registry
from ..core.timeseries import TimeSeries
from ..core.config import SystemConfig

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = "_orig"


def repair_timing(
    registry: Registry,
    config: SystemConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> bool:
    """
    Some messages arrive with inaccurate timestamps. Assuming they are
    periodic, their samples are spread evenly over the observed span.

    The untouched samples are kept next to the series as `<name>_orig`; an
    existing backup from an earlier run is kept as is.
    """
    repaired = False
    # snapshot: backups are registered while iterating
    for series in registry.channels():
        if not isinstance(series, TimeSeries) or not series.bad_timestamps:
            continue

        backup_path = series.full_path + BACKUP_SUFFIX
        if registry.find(backup_path) is None:
            backup = series.clone(name=series.name + BACKUP_SUFFIX)
            backup.bad_timestamps = False
            registry.register(backup_path, backup)

        series.make_periodic()
        log.info("fixed timing of %s (made periodic)", series.full_path)
        repaired = True
    return repaired

# mavtelemetry/postprocess/pipeline.py
from __future__ import annotations

import logging
from typing import Callable, Sequence

from ..core.registry import Registry
from ..core.config import SystemConfig
from .flightbook import flightbook
from .glide import glide_distance, glide_performance
from .power import power_stats
from .timing import repair_timing

logger = logging.getLogger(__name__)

Pass = Callable[..., bool]

# Order matters: timing repair first, the rest assumes well-formed time axes.
PIPELINE: tuple[tuple[str, Pass], ...] = (
    ("timing", repair_timing),
    ("flightbook", flightbook),
    ("powerstats", power_stats),
    ("glideperf_pos", glide_distance),
    ("glideperf_vel", glide_performance),
)


def run_pipeline(
    registry: Registry,
    config: SystemConfig | None = None,
    log: logging.Logger | logging.LoggerAdapter = logger,
    passes: Sequence[tuple[str, Pass]] = PIPELINE,
) -> dict[str, bool]:
    """
    Run every postprocessing pass once, in order.

    Each pass reads whatever inputs are present and skips itself when
    required ones are missing. Returns {pass name: whether it produced output}.
    """
    config = config or SystemConfig()
    results: dict[str, bool] = {}
    for name, run in passes:
        results[name] = bool(run(registry, config, log))
        log.debug("postproc/%s: %s", name, "ran" if results[name] else "skipped")
    return results

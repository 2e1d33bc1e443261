# mavtelemetry/core/timeseries.py
from __future__ import annotations

import math
from bisect import bisect_right
from typing import Any, ClassVar, Iterable, cast

import numpy as np

from .channel import Channel
from .exceptions import InvalidTimeSeries

DTYPES: dict[str, type[np.generic]] = {
    "float": np.float32,
    "double": np.float64,
    "uint": np.uint32,
}


class TimeSeries(Channel):
    """
    Appendable time series: relative sample times (seconds) + values.

    Samples are always kept ordered by time. An append older than the latest
    sample is inserted in order and flags the series with `bad_timestamps`,
    which the timing-repair postprocessor picks up later.
    """

    kind: ClassVar[str] = "series"

    def __init__(self, name: str, dtype: str = "float", **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        if dtype not in DTYPES:
            raise InvalidTimeSeries(f"dtype must be one of {sorted(DTYPES)}, got {dtype!r}")
        self.dtype = dtype
        self.bad_timestamps = False
        self._t: list[float] = []
        self._v: list[Any] = []
        self._cache: tuple[np.ndarray, np.ndarray] | None = None

    @classmethod
    def from_arrays(
        cls,
        name: str,
        time: Iterable[float],
        values: Iterable[Any],
        dtype: str = "double",
        **kwargs: Any,
    ) -> "TimeSeries":
        ts = cls(name, dtype=dtype, **kwargs)
        ts.extend(time, values)
        return ts

    # ---- numpy views ----
    def _arrays(self) -> tuple[np.ndarray, np.ndarray]:
        if self._cache is None:
            self._cache = (
                np.asarray(self._t, dtype=np.float64),
                np.asarray(self._v, dtype=DTYPES[self.dtype]),
            )
        return self._cache

    @property
    def time(self) -> np.ndarray:
        return self._arrays()[0]

    @property
    def values(self) -> np.ndarray:
        return self._arrays()[1]

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray]:
        t, v = self._arrays()
        if copy:
            return t.copy(), v.copy()
        return t, v

    # ---- size / bounds ----
    @property
    def n(self) -> int:
        return len(self._t)

    @property
    def t_start(self) -> float | None:
        return self._t[0] if self._t else None

    @property
    def t_end(self) -> float | None:
        return self._t[-1] if self._t else None

    # ---- writing ----
    def _check_value(self, value: Any) -> Any:
        if self.dtype == "uint":
            if value < 0:
                raise InvalidTimeSeries(f"negative value {value} for unsigned series '{self.name}'")
            return int(value)
        return float(value)

    def append(self, value: Any, t: float) -> None:
        t = float(t)
        if not math.isfinite(t):
            raise InvalidTimeSeries(f"non-finite timestamp for '{self.name}'")
        value = self._check_value(value)
        if not self._t or t >= self._t[-1]:
            self._t.append(t)
            self._v.append(value)
        else:
            k = bisect_right(self._t, t)
            self._t.insert(k, t)
            self._v.insert(k, value)
            self.bad_timestamps = True
        self._cache = None

    def extend(self, time: Iterable[float], values: Iterable[Any]) -> None:
        t = np.asarray(list(time) if not isinstance(time, np.ndarray) else time, dtype=np.float64)
        v = np.asarray(list(values) if not isinstance(values, np.ndarray) else values)
        if t.ndim != 1 or v.ndim != 1:
            raise InvalidTimeSeries("`time` and `values` must be 1D")
        if t.size != v.size:
            raise InvalidTimeSeries(
                f"`time` and `values` must have same length, got {t.size} vs {v.size}"
            )
        for tk, vk in zip(t.tolist(), v.tolist()):
            self.append(vk, tk)

    def clear(self) -> None:
        self._t.clear()
        self._v.clear()
        self.bad_timestamps = False
        self._cache = None

    # ---- reading ----
    def sample(self, k: int) -> tuple[float, Any]:
        return self._t[k], self._v[k]

    @property
    def last(self) -> tuple[float, Any] | None:
        return (self._t[-1], self._v[-1]) if self._t else None

    def get_min(self) -> float | None:
        if not self._t:
            return None
        return float(np.nanmin(self.values))

    def get_max(self) -> float | None:
        if not self._t:
            return None
        return float(np.nanmax(self.values))

    def value_range(self) -> float:
        if not self._t:
            return 0.0
        return float(self.get_max() - self.get_min())

    def nearest(self, t: float) -> tuple[float, Any] | None:
        if not self._t:
            return None
        k = bisect_right(self._t, t)
        if k == 0:
            return self.sample(0)
        if k == self.n:
            return self.sample(k - 1)
        before, after = self._t[k - 1], self._t[k]
        return self.sample(k - 1) if (t - before) <= (after - t) else self.sample(k)

    def sample_at(self, times: Iterable[float] | np.ndarray) -> np.ndarray:
        """
        Values at arbitrary times.

        Floating series are linearly interpolated; unsigned series take the
        nearest sample. Outside the covered span the end values are held.
        An empty series yields NaN everywhere.
        """
        q = np.asarray(times, dtype=np.float64)
        if not self._t:
            return np.full(q.shape, np.nan)
        t, v = self._arrays()
        if self.dtype != "uint":
            return np.interp(q, t, v.astype(np.float64))
        if t.size == 1:
            return np.full(q.shape, float(v[0]))
        k = np.clip(np.searchsorted(t, q), 1, t.size - 1)
        pick_before = (q - t[k - 1]) <= (t[k] - q)
        return np.where(pick_before, v[k - 1], v[k]).astype(np.float64)

    def value_at(self, t: float) -> float | None:
        if not self._t:
            return None
        return float(self.sample_at(np.array([t]))[0])

    def slice_time(
        self,
        t_min: float | None = None,
        t_max: float | None = None,
        *,
        closed: str = "both",
    ) -> "TimeSeries":
        if closed not in {"both", "left", "right", "neither"}:
            raise ValueError("closed must be one of: both, left, right, neither")

        t, v = self._arrays()
        mask = np.ones_like(t, dtype=bool)

        if t_min is not None:
            if closed in {"both", "left"}:
                mask &= (t >= t_min)
            else:
                mask &= (t > t_min)

        if t_max is not None:
            if closed in {"both", "right"}:
                mask &= (t <= t_max)
            else:
                mask &= (t < t_max)

        out = TimeSeries(dtype=self.dtype, **self._copy_header(None))
        out._t = t[mask].tolist()
        out._v = v[mask].tolist()
        return out

    def mean(self, *, skipna: bool = True) -> float | None:
        if not self._t:
            return None
        v = self.values
        if skipna and np.issubdtype(v.dtype, np.floating):
            return float(np.nanmean(v))
        return float(np.mean(v))

    def std(self, *, ddof: int = 0, skipna: bool = True) -> float | None:
        if not self._t:
            return None
        v = self.values
        if skipna and np.issubdtype(v.dtype, np.floating):
            return float(np.nanstd(v, ddof=ddof))
        return float(np.std(v, ddof=ddof))

    # ---- derived views ----
    def moving_average(self, window: float, *, into: "TimeSeries | None" = None) -> "TimeSeries":
        """
        Trailing moving average over `window` seconds.

        Each output sample at t_k averages all samples in [t_k - window, t_k].
        When `into` is given it is cleared and filled, otherwise a new derived
        series named `<name> avg` is returned.
        """
        if window <= 0:
            raise ValueError("window must be positive")
        if into is None:
            into = TimeSeries(
                f"{self.name} avg",
                dtype="double",
                meta=self.meta.copy(),
                derived=True,
                group_path=self.group_path,
            )
        into.clear()
        into.epoch_data_start = self.epoch_data_start
        if not self._t:
            return into

        t, v = self._arrays()
        v = v.astype(np.float64)
        csum = np.concatenate(([0.0], np.cumsum(v)))
        first = np.searchsorted(t, t - window, side="left")
        last = np.arange(1, t.size + 1)
        avg = (csum[last] - csum[first]) / (last - first)
        into._t = t.tolist()
        into._v = avg.tolist()
        into._cache = None
        return into

    def make_periodic(self) -> None:
        """Redistribute the samples evenly over the observed time span."""
        if self.n >= 2:
            self._t = np.linspace(self._t[0], self._t[-1], self.n).tolist()
            self._cache = None
        self.bad_timestamps = False

    # ---- clone / merge ----
    def clone(self, name: str | None = None) -> "TimeSeries":
        out = TimeSeries(dtype=self.dtype, **self._copy_header(name))
        out._t = list(self._t)
        out._v = list(self._v)
        out.bad_timestamps = self.bad_timestamps
        return out

    def rebase(self, epoch_usec: int) -> None:
        if self.epoch_data_start and epoch_usec:
            shift = (self.epoch_data_start - int(epoch_usec)) / 1e6
            self._t = [t + shift for t in self._t]
            self._cache = None
        super().rebase(epoch_usec)

    def merge_in(self, other: Channel) -> None:
        """
        Interleave the samples of `other` by time.

        Exact (time, value) duplicates are dropped, so merging a series into
        itself changes nothing. When both series are anchored to different
        absolute epochs, `other` is rebased onto ours first.
        """
        other = cast(TimeSeries, self._check_mergeable(other))
        shift = self._epoch_shift(other)

        known = set(zip(self._t, self._v))
        merged = list(zip(self._t, self._v))
        for t, v in zip(other._t, other._v):
            t = t + shift
            v = self._check_value(v)
            if (t, v) in known:
                continue
            known.add((t, v))
            merged.append((t, v))
        merged.sort(key=lambda p: p[0])
        self._t = [p[0] for p in merged]
        self._v = [p[1] for p in merged]
        self.bad_timestamps = self.bad_timestamps or other.bad_timestamps
        self._cache = None

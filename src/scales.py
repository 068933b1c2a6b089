"""
Continuous scales for chart layout.

LinearScale and TimeScale map a data domain onto a pixel range and provide
tick values and tick labels. Tick placement reuses matplotlib's locators
(MaxNLocator for numbers, AutoDateLocator for timestamps) without creating a
figure, so the chart tree gets the same "nice" steps a matplotlib axis would.
Scales are immutable: nice() returns a new scale.
"""

import math
from dataclasses import dataclass, replace
from typing import Callable, Sequence

import matplotlib.dates as mdates
import numpy as np
import pandas as pd
from matplotlib.ticker import MaxNLocator, StrMethodFormatter

# Multiples of a power of ten allowed as tick steps
NICE_STEPS = [1, 2, 5, 10]


def _nice_locator(count: int) -> MaxNLocator:
    return MaxNLocator(nbins=max(1, int(count)), steps=NICE_STEPS)


def _step_decimals(ticks: Sequence[float]) -> int:
    if len(ticks) < 2:
        value = abs(ticks[0]) if ticks else 0.0
        if value == 0 or float(value).is_integer():
            return 0
        return max(0, -int(math.floor(math.log10(value))) + 1)
    step = abs(ticks[1] - ticks[0])
    if step == 0:
        return 0
    return max(0, -int(math.floor(math.log10(step) + 1e-9)))


@dataclass(frozen=True)
class LinearScale:
    """Linear map from a numeric domain to a pixel range."""

    domain: tuple[float, float]
    range: tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return r0 + (float(value) - d0) / (d1 - d0) * (r1 - r0)

    def nice(self, count: int = 10) -> "LinearScale":
        """Extend the domain outward to the nearest tick-step multiples."""
        d0, d1 = self.domain
        lo, hi = min(d0, d1), max(d0, d1)
        if lo == hi or not (np.isfinite(lo) and np.isfinite(hi)):
            return self
        raw = _nice_locator(count).tick_values(lo, hi)
        lo_n, hi_n = float(min(raw[0], lo)), float(max(raw[-1], hi))
        return replace(self, domain=(lo_n, hi_n) if d0 <= d1 else (hi_n, lo_n))

    def ticks(self, count: int = 10) -> list[float]:
        """Approximately `count` round values inside the domain."""
        d0, d1 = self.domain
        lo, hi = min(d0, d1), max(d0, d1)
        if lo == hi:
            return [float(lo)]
        raw = _nice_locator(count).tick_values(lo, hi)
        tol = (hi - lo) * 1e-9
        out = []
        decimals = _step_decimals(raw)
        for value in raw:
            if lo - tol <= value <= hi + tol:
                # Drop float noise such as 0.30000000000000004
                out.append(round(float(value), decimals + 2) + 0.0)
        return out

    def tick_format(self, count: int = 10) -> Callable[[float], str]:
        """Formatter with a fixed number of decimals derived from the tick step."""
        decimals = _step_decimals(self.ticks(count))
        formatter = StrMethodFormatter("{x:,.%df}" % decimals)

        def fmt(value: float) -> str:
            # round() first so -0.0 does not print as "-0"
            return formatter(round(float(value), decimals) + 0.0)

        return fmt


@dataclass(frozen=True)
class TimeScale:
    """Linear map from a timestamp domain to a pixel range."""

    domain: tuple[pd.Timestamp, pd.Timestamp]
    range: tuple[float, float]

    def __call__(self, value) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        fraction = (pd.Timestamp(value) - d0) / (d1 - d0)
        return r0 + float(fraction) * (r1 - r0)

    def _locator(self, count: int) -> mdates.AutoDateLocator:
        count = max(1, int(count))
        locator = mdates.AutoDateLocator(
            minticks=max(1, count // 2), maxticks=count + 1, interval_multiples=True
        )
        locator.create_dummy_axis()
        return locator

    def ticks(self, count: int = 10) -> list[pd.Timestamp]:
        """Calendar-aligned timestamps inside the domain."""
        d0, d1 = self.domain
        lo, hi = min(d0, d1), max(d0, d1)
        if lo == hi:
            return [lo]
        nums = self._locator(count).tick_values(lo.to_pydatetime(), hi.to_pydatetime())
        out = []
        for num in nums:
            ts = pd.Timestamp(mdates.num2date(num)).tz_convert(None).round("us")
            if lo <= ts <= hi:
                out.append(ts)
        return out or [lo, hi]

    def tick_format(self, count: int = 10) -> Callable[[pd.Timestamp], str]:
        """
        Concise date labels: the coarsest unit that changes between ticks picks
        the format (years, months, days, hours/minutes or seconds).
        """
        ticks = self.ticks(count)
        formatter = mdates.ConciseDateFormatter(self._locator(count))
        nums = mdates.date2num(pd.DatetimeIndex(ticks).to_numpy())
        labels = dict(zip(ticks, formatter.format_ticks(nums)))

        def fmt(value) -> str:
            ts = pd.Timestamp(value)
            if ts in labels:
                return labels[ts]
            return formatter.format_ticks(mdates.date2num(np.array([ts.to_datetime64()])))[0]

        return fmt

"""Row and series containers plus the row -> series reshape."""

from dataclasses import dataclass
from typing import Sequence, Union

import pandas as pd

from .formats import KeyValue


@dataclass(frozen=True)
class ParsedRow:
    """
    One validated data row.

    x is the parsed key cell; values holds one finite float per non-key
    column, aligned with labels (header minus its first entry).
    """

    x: KeyValue
    labels: tuple[str, ...]
    values: tuple[float, ...]

    def __getitem__(self, key: Union[str, int]) -> float:
        if isinstance(key, int):
            return self.values[key]
        return self.values[self.labels.index(key)]


@dataclass(frozen=True)
class SeriesPoint:
    x: KeyValue
    y: float


@dataclass(frozen=True)
class Series:
    name: str
    points: tuple[SeriesPoint, ...]

    @property
    def xs(self) -> list[KeyValue]:
        return [p.x for p in self.points]

    @property
    def ys(self) -> list[float]:
        return [p.y for p in self.points]


def build_series(rows: Sequence[ParsedRow], header: Sequence[str]) -> list[Series]:
    """
    Reshape validated rows into one Series per non-key header label.

    Points keep input row order. Nothing is sorted, aggregated, deduplicated or
    interpolated. Values are looked up by column position so that repeated
    header labels still yield separate series.
    """
    return [
        Series(
            name=label,
            points=tuple(SeriesPoint(x=row.x, y=row.values[idx]) for row in rows),
        )
        for idx, label in enumerate(header[1:])
    ]


def series_frame(series: Sequence[Series], key_label: str = "x") -> pd.DataFrame:
    """
    Tabulate series side by side (one column per series) for inspection.

    All series built from one scan share the same x sequence, so the first
    series provides the key column.
    """
    if not series:
        return pd.DataFrame()
    data = {key_label: series[0].xs}
    for idx, s in enumerate(series):
        # Duplicate labels would collide as DataFrame columns
        name = s.name if s.name not in data else f"{s.name}.{idx}"
        data[name] = s.ys
    return pd.DataFrame(data)

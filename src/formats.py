"""
Key-column format detection.

The first column of a CSV block becomes the horizontal axis of the chart. Its
type is never declared by the author, so it is inferred from sample cells by
walking a closed, priority-ordered table of FormatDescriptor entries:

- explicit calendar patterns  (YYYY-MM-DD, YYYY-MM, YYYY)
- explicit clock patterns     (HH:MM:SS, HH:MM, HH)
- fixed-width epoch counts    (10 / 13 / 16 digits -> s / ms / us)
- generic calendar parse      (anything pandas can read that is not a bare number)
- plain signed integer        (non-temporal, linear axis)

The first descriptor whose structural predicate matches wins. The descriptor's
parse function is then used by the row validator as the semantic check for
every following row.
"""

import re
import warnings
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd

KeyValue = Union[pd.Timestamp, float]

# Anything that reads as a bare number is kept away from the generic calendar
# parse, otherwise dateutil would happily turn "12" into a day of this month.
_NUMBER_LIKE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
# Relative words such as "now" or "today" resolve against the wall clock;
# a calendar key must carry at least one digit.
_HAS_DIGIT = re.compile(r"\d")


class FormatKind(Enum):
    """Tags for the supported key-column interpretations."""

    DATE_YMD = "date-ymd"
    DATE_YM = "date-ym"
    DATE_Y = "date-y"
    TIME_HMS = "time-hms"
    TIME_HM = "time-hm"
    TIME_H = "time-h"
    EPOCH_SECONDS = "epoch-seconds"
    EPOCH_MILLIS = "epoch-millis"
    EPOCH_MICROS = "epoch-micros"
    ISO_DATETIME = "iso-datetime"
    PLAIN_NUMBER = "plain-number"


class DetectionPolicy(Enum):
    """
    Which key cells are offered to detect_format() by the pipeline.

    FIRST_ROW: only the first data row (streaming friendly; later rows are
               validated against the chosen descriptor).
    ALL_ROWS:  every structurally complete data row must match the descriptor.
    """

    FIRST_ROW = auto()
    ALL_ROWS = auto()


@dataclass(frozen=True)
class FormatDescriptor:
    """
    One interpretation of the key column.

    Attributes:
        kind: Tag identifying the interpretation.
        matches: Structural predicate used for detection.
        parse: Converts a cell to a timestamp or float; returns None when the
            cell is not a valid instance of this interpretation.
        is_temporal: True when the axis should use a time scale.
    """

    kind: FormatKind
    matches: Callable[[str], bool]
    parse: Callable[[str], Optional[KeyValue]]
    is_temporal: bool

    def accepts(self, cell: str) -> bool:
        """Semantic check applied to every row after detection."""
        return self.parse(cell) is not None

    @property
    def tag(self) -> str:
        return self.kind.value


def _pattern(regex: str) -> Callable[[str], bool]:
    compiled = re.compile(regex)
    return lambda cell: compiled.fullmatch(cell) is not None


def _naive_utc(value) -> Optional[pd.Timestamp]:
    if value is None or pd.isna(value):
        return None
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def _strptime_parser(fmt: str) -> Callable[[str], Optional[pd.Timestamp]]:
    def parse(cell: str) -> Optional[pd.Timestamp]:
        # exact=True and errors="coerce": malformed cells become NaT instead of raising
        try:
            value = pd.to_datetime(cell, format=fmt, exact=True, errors="coerce")
        except (ValueError, OverflowError):
            # Outside the nanosecond Timestamp range (1677-09-21 to 2262-04-11)
            return None
        return _naive_utc(value)

    return parse


def _epoch_parser(unit: str) -> Callable[[str], Optional[pd.Timestamp]]:
    def parse(cell: str) -> Optional[pd.Timestamp]:
        count = pd.to_numeric(cell, errors="coerce")
        if pd.isna(count) or not np.isfinite(count):
            return None
        try:
            value = pd.to_datetime(count, unit=unit, errors="coerce")
        except (ValueError, OverflowError):
            return None
        return _naive_utc(value)

    return parse


def _parse_generic_datetime(cell: str) -> Optional[pd.Timestamp]:
    if not cell or _NUMBER_LIKE.fullmatch(cell) or not _HAS_DIGIT.search(cell):
        return None
    with warnings.catch_warnings():
        # pandas warns when it has to fall back to dateutil for a lone string
        warnings.simplefilter("ignore", UserWarning)
        try:
            value = pd.to_datetime(cell, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    return _naive_utc(value)


def _parse_number(cell: str) -> Optional[float]:
    value = pd.to_numeric(cell, errors="coerce")
    if pd.isna(value) or not np.isfinite(value):
        return None
    return float(value)


FORMAT_DESCRIPTORS: tuple[FormatDescriptor, ...] = (
    FormatDescriptor(
        FormatKind.DATE_YMD,
        _pattern(r"\d{4}-\d{2}-\d{2}"),
        _strptime_parser("%Y-%m-%d"),
        True,
    ),
    FormatDescriptor(
        FormatKind.DATE_YM, _pattern(r"\d{4}-\d{2}"), _strptime_parser("%Y-%m"), True
    ),
    FormatDescriptor(
        FormatKind.DATE_Y, _pattern(r"\d{4}"), _strptime_parser("%Y"), True
    ),
    FormatDescriptor(
        FormatKind.TIME_HMS,
        _pattern(r"\d{2}:\d{2}:\d{2}"),
        _strptime_parser("%H:%M:%S"),
        True,
    ),
    FormatDescriptor(
        FormatKind.TIME_HM, _pattern(r"\d{2}:\d{2}"), _strptime_parser("%H:%M"), True
    ),
    FormatDescriptor(
        FormatKind.TIME_H, _pattern(r"\d{2}"), _strptime_parser("%H"), True
    ),
    FormatDescriptor(
        FormatKind.EPOCH_SECONDS, _pattern(r"\d{10}"), _epoch_parser("s"), True
    ),
    FormatDescriptor(
        FormatKind.EPOCH_MILLIS, _pattern(r"\d{13}"), _epoch_parser("ms"), True
    ),
    FormatDescriptor(
        FormatKind.EPOCH_MICROS, _pattern(r"\d{16}"), _epoch_parser("us"), True
    ),
    FormatDescriptor(
        FormatKind.ISO_DATETIME,
        lambda cell: _parse_generic_datetime(cell) is not None,
        _parse_generic_datetime,
        True,
    ),
    FormatDescriptor(
        FormatKind.PLAIN_NUMBER, _pattern(r"-?\d+"), _parse_number, False
    ),
)


def descriptor_for(kind: Union[FormatKind, str]) -> FormatDescriptor:
    """Return the descriptor registered for a kind or its string tag."""
    if isinstance(kind, str):
        kind = FormatKind(kind)
    for descriptor in FORMAT_DESCRIPTORS:
        if descriptor.kind is kind:
            return descriptor
    raise KeyError(kind)


def detect_format(
    samples: Union[str, Sequence[str]],
    descriptors: Iterable[FormatDescriptor] = FORMAT_DESCRIPTORS,
) -> Optional[FormatDescriptor]:
    """
    Pick the first descriptor, in priority order, matching every sample.

    Args:
        samples: A single key cell or a sequence of key cells.
        descriptors: Candidate table; defaults to FORMAT_DESCRIPTORS.

    Returns:
        The matching FormatDescriptor, or None when nothing matches (or no
        samples were given).
    """
    if isinstance(samples, str):
        samples = [samples]
    cells = [s.strip() for s in samples]
    if not cells:
        return None
    for descriptor in descriptors:
        if all(descriptor.matches(cell) for cell in cells):
            return descriptor
    return None

#!/usr/bin/env python3
"""
CSV Block Processor
Splits a raw CSV text block into header and data lines, validates data rows
against a detected key format, and reads CSV text from files for the CLI.
"""

import logging
import re
import sys
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .formats import FormatDescriptor
from .series import ParsedRow

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


class CSVProcessingError(Exception):
    """Base exception for CSV processing errors."""

    pass


class FileAccessError(CSVProcessingError):
    """Raised when file cannot be accessed or read."""

    pass


@dataclass(frozen=True)
class CSVBlock:
    """A CSV text block split into its header cells and raw data lines."""

    header: tuple[str, ...]
    lines: tuple[str, ...]

    @property
    def column_count(self) -> int:
        return len(self.header)


def split_cells(line: str) -> list[str]:
    """Split one line on commas and trim every cell."""
    return [cell.strip() for cell in line.split(",")]


def split_block(text: str) -> Optional[CSVBlock]:
    """
    Split raw block text into header + data lines.

    Blank lines are dropped and every line is trimmed. Returns None when fewer
    than two non-blank lines remain.
    """
    lines = [ln.strip() for ln in _LINE_BREAK.split(text.strip())]
    lines = [ln for ln in lines if ln]
    if len(lines) < 2:
        return None
    return CSVBlock(header=tuple(split_cells(lines[0])), lines=tuple(lines[1:]))


class ScanState(Enum):
    """
    Row scan states.

    SCANNING is initial; CONTINUE loops back to SCANNING on the next line;
    STOPPED_OK and ABORTED are terminal.
    """

    SCANNING = auto()
    CONTINUE = auto()
    STOPPED_OK = auto()
    ABORTED = auto()


class ScanOutcome(Enum):
    """Final verdict of a row scan."""

    ACCEPTED = auto()
    ABORTED = auto()
    INSUFFICIENT = auto()


@dataclass(frozen=True)
class LineVerdict:
    state: ScanState
    row: Optional[ParsedRow] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class RowScanResult:
    """
    Result of validate_rows().

    Attributes:
        state: Terminal scan state (STOPPED_OK or ABORTED).
        rows: Valid complete rows accumulated before the scan ended. Empty when
            the scan aborted.
        outcome: ACCEPTED, ABORTED or INSUFFICIENT.
        line_index: 0-based index (into the data lines) of the line that ended
            the scan, or None when every line was consumed.
        reason: Human-readable explanation for a stop or abort.
    """

    state: ScanState
    rows: tuple[ParsedRow, ...]
    outcome: ScanOutcome
    line_index: Optional[int] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is ScanOutcome.ACCEPTED


def _finite_number(cell: str) -> Optional[float]:
    value = pd.to_numeric(cell, errors="coerce")
    if pd.isna(value) or not np.isfinite(value):
        return None
    return float(value)


def classify_line(
    line: str, header: Sequence[str], descriptor: FormatDescriptor
) -> LineVerdict:
    """
    Classify a single data line.

    - Cell count differs from the header: the line is still being written,
      stop the scan without error (STOPPED_OK).
    - Key cell rejected by the descriptor, or any value cell not a finite
      number: the block is invalid (ABORTED).
    - Otherwise the line is a valid complete row (CONTINUE).
    """
    cells = split_cells(line)
    if len(cells) != len(header):
        return LineVerdict(
            ScanState.STOPPED_OK,
            reason=f"expected {len(header)} cells, got {len(cells)}",
        )

    x = descriptor.parse(cells[0])
    if x is None:
        return LineVerdict(
            ScanState.ABORTED,
            reason=f"key {cells[0]!r} is not a valid {descriptor.tag} value",
        )

    values = []
    for label, cell in zip(header[1:], cells[1:]):
        y = _finite_number(cell)
        if y is None:
            return LineVerdict(
                ScanState.ABORTED,
                reason=f"value {cell!r} in column {label!r} is not a finite number",
            )
        values.append(y)

    row = ParsedRow(x=x, labels=tuple(header[1:]), values=tuple(values))
    return LineVerdict(ScanState.CONTINUE, row=row)


def validate_rows(
    lines: Sequence[str],
    header: Sequence[str],
    descriptor: FormatDescriptor,
    min_rows: int = 2,
) -> RowScanResult:
    """
    Scan data lines in order and decide whether the block can be charted.

    An invalid complete row aborts the whole block, even when earlier rows
    were valid: a chart built from the prefix would disappear again as soon as
    more text arrives after the bad row. A line with the wrong number of cells
    ends the scan quietly, keeping everything accumulated so far.

    Args:
        lines: Data lines (header excluded).
        header: Header cells.
        descriptor: Key format chosen by detect_format().
        min_rows: Rows required for an ACCEPTED outcome.

    Returns:
        RowScanResult describing the terminal state and accepted rows.
    """
    rows: list[ParsedRow] = []
    state = ScanState.SCANNING
    line_index: Optional[int] = None
    reason: Optional[str] = None

    for idx, line in enumerate(lines):
        verdict = classify_line(line, header, descriptor)
        if verdict.state is ScanState.CONTINUE:
            rows.append(verdict.row)
            state = ScanState.SCANNING
            continue
        state, line_index, reason = verdict.state, idx, verdict.reason
        logger.debug(f"Row scan ended at data line {idx + 1}: {reason}")
        break
    else:
        state = ScanState.STOPPED_OK

    if state is ScanState.ABORTED:
        return RowScanResult(state, (), ScanOutcome.ABORTED, line_index, reason)

    if len(header) < 2 or len(rows) < min_rows:
        return RowScanResult(
            state,
            tuple(rows),
            ScanOutcome.INSUFFICIENT,
            line_index,
            reason or f"{len(rows)} valid row(s), need {min_rows}",
        )
    return RowScanResult(state, tuple(rows), ScanOutcome.ACCEPTED, line_index, reason)


class CSVTextSource:
    """
    Reads CSV (or document) text from a file for the command-line interface.

    The chart pipeline itself works on in-memory text; this class only
    handles file access and a quick pandas-based summary for --info.
    """

    def __init__(self, file_path: Union[str, Path]) -> None:
        """
        Initialize the source with a file path.

        Args:
            file_path: Path to the file to read

        Raises:
            FileNotFoundError: If the specified file does not exist
            FileAccessError: If the path is not a regular file
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Input file not found: {self.file_path}")
        if not self.file_path.is_file():
            raise FileAccessError(f"Path is not a file: {self.file_path}")

    def read_text(self) -> str:
        """
        Return the whole file as text.

        Raises:
            FileAccessError: If the file cannot be read or decoded
        """
        try:
            return self.file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(f"Error reading input file: {e}")

    def get_file_info(self) -> Dict[str, Any]:
        """
        Summarize the file as a CSV table.

        Returns:
            Dict[str, Any]: path, size, data row count, columns and dtypes

        Raises:
            FileAccessError: If the file cannot be parsed as CSV
        """
        try:
            df = pd.read_csv(self.file_path, skipinitialspace=True)
        except pd.errors.EmptyDataError:
            df = pd.DataFrame()
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise FileAccessError(f"Error getting file info: {e}")

        return {
            "file_path": str(self.file_path),
            "file_size": self.file_path.stat().st_size,
            "total_rows": int(len(df)),
            "columns": [str(c) for c in df.columns],
            "column_count": len(df.columns),
            "dtypes": {str(col): str(dtype) for col, dtype in df.dtypes.items()},
        }

    def print_file_info(self) -> None:
        """Print the file summary; errors are reported, not raised."""
        try:
            info = self.get_file_info()
        except FileAccessError as e:
            print(f"Error: {e}", file=sys.stderr)
            return
        print(f"CSV File: {info['file_path']}")
        print(f"Total data rows: {info['total_rows']}")
        print(f"Columns: {info['columns']}")
        print(f"Dtypes: {info['dtypes']}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        pass

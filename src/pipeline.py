"""
Detect -> validate -> reshape -> render.

run_pipeline() is a pure function of the block text and options: no shared
state, no I/O. Every failure is a declined transformation reported through
PipelineResult.reason; nothing in here raises for bad input data. Calling it
again on a longer prefix of the same block recomputes everything from scratch.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from .chart import ChartNode, ChartOptions, render_chart
from .csv_processor import (
    RowScanResult,
    ScanOutcome,
    split_block,
    split_cells,
    validate_rows,
)
from .formats import DetectionPolicy, FormatDescriptor, detect_format
from .series import Series, build_series

logger = logging.getLogger(__name__)

MIN_DATA_ROWS = 2
MIN_COLUMNS = 2


class DeclineReason(Enum):
    """Why no chart was produced."""

    TOO_FEW_LINES = auto()
    TOO_FEW_COLUMNS = auto()
    ROW_CARDINALITY = auto()
    NO_FORMAT_MATCH = auto()
    INVALID_ROW = auto()
    INSUFFICIENT_ROWS = auto()


@dataclass
class PipelineResult:
    """Chart (or decline reason) plus diagnostics for one pipeline run."""

    chart: Optional[ChartNode] = None
    descriptor: Optional[FormatDescriptor] = None
    series: list[Series] = field(default_factory=list)
    scan: Optional[RowScanResult] = None
    reason: Optional[DeclineReason] = None
    detail: Optional[str] = None

    # Diagnostics
    label: str = "run_pipeline"
    data_lines: int = 0
    accepted_rows: int = 0
    events: list[str] = field(default_factory=list)
    started_at: Optional[float] = None
    elapsed_ms: Optional[float] = None

    @property
    def produced(self) -> bool:
        return self.chart is not None

    def start(self) -> None:
        self.started_at = time.perf_counter()

    def stop(self) -> None:
        if self.started_at is not None:
            self.elapsed_ms = (time.perf_counter() - self.started_at) * 1000.0

    def add_event(self, message: str) -> None:
        self.events.append(message)
        logger.debug(message)

    def decline(self, reason: DeclineReason, detail: str) -> "PipelineResult":
        self.reason = reason
        self.detail = detail
        self.add_event(f"declined: {reason.name} ({detail})")
        self.stop()
        return self

    def summarize(self) -> str:
        """Produce a concise summary string for diagnostics."""
        parts = [f"{self.label} result: {self.data_lines} line(s) → {self.accepted_rows} row(s)"]
        if self.descriptor is not None:
            parts.append(f"format={self.descriptor.tag}")
        if self.chart is not None:
            parts.append(f"series={len(self.series)}")
        if self.reason is not None:
            parts.append(f"declined={self.reason.name}")
        if self.detail:
            parts.append(f"detail={self.detail}")
        if self.elapsed_ms is not None:
            parts.append(f"elapsed_ms={self.elapsed_ms:.1f}")
        return " | ".join(parts)


def run_pipeline(
    text: str,
    options: Optional[ChartOptions] = None,
    policy: DetectionPolicy = DetectionPolicy.FIRST_ROW,
    verbose: bool = False,
) -> PipelineResult:
    """
    Turn a CSV text block into a chart document, or explain why not.

    Args:
        text: Raw block text; first line is the header.
        options: Chart layout options (defaults to ChartOptions()).
        policy: Which key cells drive format detection.
        verbose: Log the result summary at INFO level.

    Returns:
        PipelineResult with chart set on success, reason set otherwise.
    """
    result = PipelineResult()
    result.start()
    outcome = _run(text, options, policy, result)
    if verbose:
        logger.info(outcome.summarize())
    return outcome


def _run(
    text: str,
    options: Optional[ChartOptions],
    policy: DetectionPolicy,
    result: PipelineResult,
) -> PipelineResult:
    block = split_block(text or "")
    if block is None:
        return result.decline(DeclineReason.TOO_FEW_LINES, "need a header and data")
    result.data_lines = len(block.lines)

    if block.column_count < MIN_COLUMNS:
        return result.decline(
            DeclineReason.TOO_FEW_COLUMNS, f"header has {block.column_count} column(s)"
        )

    first = split_cells(block.lines[0])
    if len(first) != block.column_count:
        return result.decline(
            DeclineReason.ROW_CARDINALITY,
            f"first data row has {len(first)} cell(s), header has {block.column_count}",
        )

    if policy is DetectionPolicy.ALL_ROWS:
        samples = []
        for ln in block.lines:
            cells = split_cells(ln)
            if len(cells) != block.column_count:
                break
            samples.append(cells[0])
    else:
        samples = [first[0]]

    descriptor = detect_format(samples)
    if descriptor is None:
        return result.decline(
            DeclineReason.NO_FORMAT_MATCH, f"no key format matches {samples[0]!r}"
        )
    result.descriptor = descriptor
    result.add_event(f"detected key format {descriptor.tag}")

    scan = validate_rows(block.lines, block.header, descriptor, min_rows=MIN_DATA_ROWS)
    result.scan = scan
    result.accepted_rows = len(scan.rows)
    if scan.outcome is ScanOutcome.ABORTED:
        return result.decline(DeclineReason.INVALID_ROW, scan.reason or "invalid row")
    if scan.outcome is ScanOutcome.INSUFFICIENT:
        return result.decline(
            DeclineReason.INSUFFICIENT_ROWS, scan.reason or "too few rows"
        )

    result.series = build_series(scan.rows, block.header)
    result.chart = render_chart(result.series, descriptor.is_temporal, options)
    result.stop()
    return result


def build_chart(
    text: str,
    options: Optional[ChartOptions] = None,
    policy: DetectionPolicy = DetectionPolicy.FIRST_ROW,
) -> Optional[ChartNode]:
    """Chart document for `text`, or None when the block is declined."""
    return run_pipeline(text, options, policy).chart

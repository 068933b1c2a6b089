import pandas as pd

from src.csv_processor import (
    ScanOutcome,
    ScanState,
    classify_line,
    split_block,
    split_cells,
    validate_rows,
)
from src.formats import descriptor_for

HEADER = ("date", "value")
YMD = descriptor_for("date-ymd")


def test_split_cells_trims_whitespace():
    assert split_cells(" 2024-01-01 ,  10 ") == ["2024-01-01", "10"]


def test_split_block_drops_blank_lines_and_handles_crlf():
    block = split_block("\n date , value \r\n\r\n2024-01-01,10\r\n2024-01-02,20\n\n")
    assert block.header == ("date", "value")
    assert block.lines == ("2024-01-01,10", "2024-01-02,20")
    assert block.column_count == 2


def test_split_block_needs_two_lines():
    assert split_block("") is None
    assert split_block("date,value\n\n") is None


def test_classify_line_verdicts():
    ok = classify_line("2024-01-01, 10", HEADER, YMD)
    assert ok.state is ScanState.CONTINUE
    assert ok.row.x == pd.Timestamp("2024-01-01")
    assert ok.row["value"] == 10.0

    short = classify_line("2024-01-03", HEADER, YMD)
    assert short.state is ScanState.STOPPED_OK
    assert short.row is None

    bad_key = classify_line("2024-99-01,5", HEADER, YMD)
    assert bad_key.state is ScanState.ABORTED

    bad_value = classify_line("2024-01-01,abc", HEADER, YMD)
    assert bad_value.state is ScanState.ABORTED
    assert "value" in bad_value.reason


def test_valid_rows_are_accepted_in_order():
    result = validate_rows(["2024-01-01,10", "2024-01-02,20"], HEADER, YMD)
    assert result.outcome is ScanOutcome.ACCEPTED
    assert result.accepted
    assert result.state is ScanState.STOPPED_OK
    assert [r["value"] for r in result.rows] == [10.0, 20.0]
    assert result.line_index is None


def test_invalid_complete_row_aborts_everything():
    lines = ["2024-01-01,10", "2024-01-02,abc"] + [
        f"2024-01-{d:02d},{d}" for d in range(3, 20)
    ]
    result = validate_rows(lines, HEADER, YMD)
    assert result.outcome is ScanOutcome.ABORTED
    assert result.state is ScanState.ABORTED
    assert result.rows == ()
    assert result.line_index == 1


def test_short_trailing_line_stops_quietly():
    result = validate_rows(["2024-01-01,10", "2024-01-02,20", "2024-01-0"], HEADER, YMD)
    assert result.outcome is ScanOutcome.ACCEPTED
    assert len(result.rows) == 2
    assert result.line_index == 2


def test_scan_stops_at_first_incomplete_line():
    # A later invalid row is never reached once an incomplete line ends the scan
    lines = ["2024-01-01,10", "2024-01-02,20", "2024-01-03", "2024-01-04,oops"]
    result = validate_rows(lines, HEADER, YMD)
    assert result.outcome is ScanOutcome.ACCEPTED
    assert len(result.rows) == 2


def test_too_few_rows_is_insufficient():
    result = validate_rows(["2024-01-01,10"], HEADER, YMD)
    assert result.outcome is ScanOutcome.INSUFFICIENT
    assert not result.accepted
    assert len(result.rows) == 1


def test_single_column_header_is_insufficient():
    result = validate_rows(["2024-01-01", "2024-01-02"], ("date",), YMD)
    assert result.outcome is ScanOutcome.INSUFFICIENT


def test_non_finite_values_abort():
    for cell in ["nan", "inf", ""]:
        result = validate_rows(["2024-01-01,1", f"2024-01-02,{cell}"], HEADER, YMD)
        assert result.outcome is ScanOutcome.ABORTED, cell

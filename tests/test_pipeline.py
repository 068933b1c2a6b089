from src.chart import ChartOptions, NodeKind
from src.formats import DetectionPolicy
from src.pipeline import DeclineReason, build_chart, run_pipeline


def test_two_dates_one_series():
    result = run_pipeline("date,value\n2024-01-01,10\n2024-01-02,20\n")
    assert result.produced
    assert result.descriptor.tag == "date-ymd"
    assert [s.name for s in result.series] == ["value"]
    assert len(result.series[0].points) == 2
    y_labels = [t.text for t in result.chart.find_group("y-axis").iter(NodeKind.TEXT)]
    assert y_labels[0] == "0"


def test_two_value_columns_get_legend_and_two_colors():
    text = (
        "Date,Revenue,Users\n"
        "2024-01-01,100,5\n"
        "2024-01-02,150,8\n"
        "2024-01-03,120,7\n"
    )
    result = run_pipeline(text)
    assert result.produced
    assert [s.name for s in result.series] == ["Revenue", "Users"]
    legend = result.chart.find_group("legend")
    assert [t.text for t in legend.iter(NodeKind.TEXT)] == ["Revenue", "Users"]
    strokes = [p.get("stroke") for p in result.chart.iter(NodeKind.PATH)]
    assert len(strokes) == 2 and strokes[0] != strokes[1]


def test_invalid_key_on_complete_row_declines():
    result = run_pipeline("t,v\n10,1\nabc,2\n")
    assert not result.produced
    assert result.reason is DeclineReason.INVALID_ROW


def test_single_data_row_declines():
    result = run_pipeline("a,b\n1,2\n")
    assert result.chart is None
    assert result.reason is DeclineReason.INSUFFICIENT_ROWS


def test_invalid_row_aborts_regardless_of_later_rows():
    rows = ["2024-01-01,1", "2024-01-02,x"] + [f"2024-01-{d:02d},{d}" for d in range(3, 29)]
    result = run_pipeline("date,v\n" + "\n".join(rows))
    assert result.chart is None
    assert result.reason is DeclineReason.INVALID_ROW


def test_short_trailing_line_is_dropped():
    result = run_pipeline("date,a,b\n2024-01-01,1,2\n2024-01-02,3,4\n2024-01-03,5")
    assert result.produced
    assert result.accepted_rows == 2
    assert all(len(s.points) == 2 for s in result.series)


def test_minimum_size_rules():
    assert run_pipeline("").reason is DeclineReason.TOO_FEW_LINES
    assert run_pipeline("date,value").reason is DeclineReason.TOO_FEW_LINES
    assert run_pipeline("x\n1\n2\n3").reason is DeclineReason.TOO_FEW_COLUMNS


def test_first_row_cardinality_mismatch_declines():
    result = run_pipeline("date,value\n2024-01-01\n2024-01-02,3\n")
    assert result.reason is DeclineReason.ROW_CARDINALITY


def test_unknown_key_format_declines():
    result = run_pipeline("name,value\nalpha,1\nbeta,2\n")
    assert result.reason is DeclineReason.NO_FORMAT_MATCH
    assert "alpha" in result.detail


def test_relative_word_keys_decline():
    result = run_pipeline("t,v\nnow,1\nnow,2\n")
    assert not result.produced
    assert result.reason is DeclineReason.NO_FORMAT_MATCH


def test_keys_outside_timestamp_range_decline_cleanly():
    result = run_pipeline("ts,v\n9999999999999,1\n9999999999998,2\n")
    assert not result.produced
    assert result.reason is DeclineReason.INVALID_ROW

    result = run_pipeline("date,v\n0001-01-01,1\n0001-01-02,2\n")
    assert result.reason is DeclineReason.INVALID_ROW


def test_growing_prefix_recomputes_from_scratch():
    snapshots = [
        "date,v\n2024-01-01,1\n",
        "date,v\n2024-01-01,1\n2024-01-0",
        "date,v\n2024-01-01,1\n2024-01-02,2\n",
        "date,v\n2024-01-01,1\n2024-01-02,2\n2024-01-03",
        "date,v\n2024-01-01,1\n2024-01-02,2\n2024-01-03,3\n",
    ]
    rows = [run_pipeline(text).accepted_rows for text in snapshots]
    produced = [run_pipeline(text).produced for text in snapshots]
    assert produced == [False, False, True, True, True]
    assert rows == [1, 1, 2, 2, 3]


def test_appending_after_bad_row_never_recovers():
    text = "date,v\n2024-01-01,1\n2024-01-02,bad\n"
    for extra in ["", "2024-01-03,3\n", "2024-01-03,3\n2024-01-04,4\n"]:
        assert run_pipeline(text + extra).chart is None


def test_all_rows_policy_checks_every_key():
    text = "t,v\n2024-01-01,1\n2024-01,2\n"
    first = run_pipeline(text, policy=DetectionPolicy.FIRST_ROW)
    assert first.reason is DeclineReason.INVALID_ROW

    everything = run_pipeline(text, policy=DetectionPolicy.ALL_ROWS)
    assert everything.produced
    assert everything.descriptor.tag == "iso-datetime"


def test_plain_numbers_use_linear_axis():
    result = run_pipeline("step,loss\n1,0.9\n2,0.5\n3,0.25\n")
    assert result.produced
    assert not result.descriptor.is_temporal
    x_labels = [t.text for t in result.chart.find_group("x-axis").iter(NodeKind.TEXT)]
    assert x_labels[0] == "1.0"


def test_epoch_keys_and_options_flow_through():
    text = "ts,v\n1704067200,1\n1704153600,2\n"
    chart = build_chart(text, ChartOptions(width=800, title="Epoch"))
    assert chart is not None
    assert chart.get("viewBox") == "0 0 800 300"
    assert chart.children[0].text == "Epoch"


def test_summary_reports_outcome():
    ok = run_pipeline("date,value\n2024-01-01,10\n2024-01-02,20\n")
    summary = ok.summarize()
    assert "format=date-ymd" in summary
    assert "series=1" in summary

    declined = run_pipeline("a,b\n1,2\n")
    assert "declined=INSUFFICIENT_ROWS" in declined.summarize()
    assert declined.elapsed_ms is not None

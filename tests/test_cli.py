import io
import json
import sys

import pytest

from src.chart import ChartOptions
from src.main import (
    EXIT_NO_CHART,
    EXIT_USER_ERROR,
    _args_to_params,
    _build_cli_parser,
    get_default_params,
    main,
    parse_chart_spec,
)

CSV = "date,value\n2024-01-01,10\n2024-01-02,20\n"


def _run_main(monkeypatch, argv):
    monkeypatch.setattr(sys, "argv", ["timeseries-chart", *argv])
    try:
        main()
    except SystemExit as e:
        return e.code
    return 0


def test_defaults():
    chart, document = get_default_params()
    assert chart == ChartOptions(width=640, height=300)
    assert document.save_original is False
    assert document.code_language == "csv"
    assert document.container_class == "timeseries-chart-container"


def test_parse_chart_spec_kv_and_json():
    default = ChartOptions()
    assert parse_chart_spec(None, default) is default
    assert parse_chart_spec("  ", default) is default

    kv = parse_chart_spec("width=800,title='Revenue',background_color=#fff", default)
    assert (kv.width, kv.title, kv.background_color) == (800.0, "Revenue", "#fff")

    js = parse_chart_spec('{"height": 200, "title": null}', ChartOptions(title="x"))
    assert js.height == 200.0
    assert js.title is None


@pytest.mark.parametrize(
    "spec",
    ["colour=red", "width", "width=wide", '{"width": null}', "[1, 2]", "{bad json"],
)
def test_parse_chart_spec_errors(spec):
    with pytest.raises(ValueError):
        parse_chart_spec(spec, ChartOptions())


def test_explicit_flags_override_chart_spec():
    argv = ["in.csv", "--chart-spec", "width=800,title=A", "--title", "B"]
    args = _build_cli_parser().parse_args(argv + ["--detect-from", "all"])
    chart, document = _args_to_params(args)
    assert chart.width == 800.0
    assert chart.title == "B"
    assert document.chart is chart
    assert document.policy.name == "ALL_ROWS"


def test_print_defaults(monkeypatch, capsys):
    assert _run_main(monkeypatch, ["--print-defaults"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["ChartOptions"]["width"] == 640
    assert payload["DocumentOptions"]["policy"] == "FIRST_ROW"
    assert payload["DocumentOptions"]["save_original"] is False


def test_main_writes_svg(tmp_path, monkeypatch, capsys):
    src = tmp_path / "data.csv"
    src.write_text(CSV, encoding="utf-8")
    out = tmp_path / "chart.svg"
    assert _run_main(monkeypatch, [str(src), "-o", str(out), "--title", "Demo"]) == 0
    content = out.read_text(encoding="utf-8")
    assert content.startswith("<?xml")
    assert ">Demo</text>" in content
    assert str(out) in capsys.readouterr().out


def test_main_default_output_name_is_content_hash(tmp_path, monkeypatch):
    src = tmp_path / "data.csv"
    src.write_text(CSV, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert _run_main(monkeypatch, [str(src), "--format", "json"]) == 0
    outputs = list(tmp_path.glob("chart-*.json"))
    assert len(outputs) == 1
    assert json.loads(outputs[0].read_text(encoding="utf-8"))["kind"] == "svg"


def test_main_declined_chart_exit_code(tmp_path, monkeypatch, capsys):
    src = tmp_path / "data.csv"
    src.write_text("a,b\n1,2\n", encoding="utf-8")
    assert _run_main(monkeypatch, [str(src)]) == EXIT_NO_CHART
    assert "INSUFFICIENT_ROWS" in capsys.readouterr().err


def test_main_missing_file_is_user_error(tmp_path, monkeypatch, capsys):
    code = _run_main(monkeypatch, [str(tmp_path / "missing.csv")])
    assert code == EXIT_USER_ERROR
    assert "not found" in capsys.readouterr().err


def test_main_bad_chart_spec_is_user_error(tmp_path, monkeypatch):
    src = tmp_path / "data.csv"
    src.write_text(CSV, encoding="utf-8")
    assert _run_main(monkeypatch, [str(src), "--chart-spec", "size=3"]) == EXIT_USER_ERROR


def test_main_document_mode_from_stdin(monkeypatch, capsys):
    doc = f"Intro\n\n```csv\n{CSV}```\n"
    monkeypatch.setattr(sys, "stdin", io.StringIO(doc))
    assert _run_main(monkeypatch, ["-", "--document", "markdown", "--save-original"]) == 0
    out = capsys.readouterr().out
    assert '<div class="timeseries-chart-container">' in out
    assert "```csv" in out


def test_main_info(tmp_path, monkeypatch, capsys):
    src = tmp_path / "data.csv"
    src.write_text(CSV, encoding="utf-8")
    assert _run_main(monkeypatch, [str(src), "--info"]) == 0
    out = capsys.readouterr().out
    assert "Total data rows: 2" in out
    assert "Parsed 2 rows" in out

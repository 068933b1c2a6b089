#!/usr/bin/env python3
"""
Time-series chart generator - command-line entry point.

The chart pipeline itself (src.pipeline.run_pipeline) is pure: text in, chart
tree or decline reason out. This module adds the plumbing around it:

- default parameters and --print-defaults
- chart option specs (key=value or JSON) merged with explicit flags
- reading input from a file or stdin
- writing SVG / JSON output, or transforming whole HTML / Markdown documents

Logging is kept for diagnostics; user-facing messages go to stdout/stderr.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

from .chart import ChartOptions
from .csv_processor import CSVProcessingError, CSVTextSource
from .document import (
    DEFAULT_CONTAINER_CLASS,
    DocumentOptions,
    transform_html,
    transform_markdown,
)
from .formats import DetectionPolicy
from .pipeline import run_pipeline
from .series import series_frame
from .svg_writer import chart_to_dict, write_svg
from .utils import canonical_json_hash, normalize_abs_posix, sanitize_for_json

# Configure logging for debugging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "TIMESERIES_CHART_DEBUG"

# Exit codes
EXIT_USER_ERROR = 2
EXIT_NO_CHART = 3

CHART_SPEC_KEYS = ("width", "height", "title", "text_color", "background_color")


def get_default_params() -> tuple[ChartOptions, DocumentOptions]:
    """
    Canonical defaults shared by the CLI and the Gradio UI.

    The CLI deployment replaces CSV blocks outright, so save_original is False.
    """
    chart = ChartOptions()
    document = DocumentOptions(
        save_original=False,
        code_language="csv",
        container_class=DEFAULT_CONTAINER_CLASS,
        chart=chart,
        policy=DetectionPolicy.FIRST_ROW,
    )
    return chart, document


def _coerce_chart_value(key: str, value: Any) -> Any:
    if key in ("width", "height"):
        if value is None:
            raise ValueError(f"{key} cannot be null")
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid numeric value for {key}: {value!r}") from e
    if value is None:
        return None
    value = str(value)
    return value if value != "" else None


def _parse_chart_spec_kv(spec: str, default: ChartOptions) -> ChartOptions:
    """
    Parse a chart specification in key=value[,key=value...] format.
    Values may be wrapped in single or double quotes.
    """
    updates: Dict[str, Any] = {}
    for kv in spec.split(","):
        if not kv.strip():
            continue
        if "=" not in kv:
            raise ValueError(f"Invalid key=value pair: {kv.strip()!r}")
        key, value = kv.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        if key not in CHART_SPEC_KEYS:
            raise ValueError(f"Unknown key in chart spec: {key}")
        updates[key] = _coerce_chart_value(key, value)
    return replace(default, **updates)


def _parse_chart_spec_json(spec: str, default: ChartOptions) -> ChartOptions:
    """
    Parse a chart specification as a JSON object. null clears optional fields.
    """
    try:
        spec_dict = json.loads(spec)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in chart spec: {e}") from e
    if not isinstance(spec_dict, dict):
        raise ValueError(f"JSON chart spec must be an object, got {type(spec_dict)}")
    updates: Dict[str, Any] = {}
    for key, value in spec_dict.items():
        if key not in CHART_SPEC_KEYS:
            raise ValueError(f"Unknown key in chart spec: {key}")
        updates[key] = _coerce_chart_value(key, value)
    return replace(default, **updates)


def parse_chart_spec(spec: Optional[str], default: ChartOptions) -> ChartOptions:
    """Dispatch to the JSON or key=value parser; blank specs return `default`."""
    if spec is None or not spec.strip():
        return default
    spec = spec.strip()
    if spec.startswith("{"):
        return _parse_chart_spec_json(spec, default)
    return _parse_chart_spec_kv(spec, default)


def _build_cli_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="timeseries-chart",
        description="Render a CSV time series (or every CSV block of a document) as an SVG line chart.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  timeseries-chart data.csv -o chart.svg
  timeseries-chart data.csv --chart-spec "width=800,title=Revenue" --format json
  timeseries-chart README.md --document markdown -o README.charts.md
  cat page.html | timeseries-chart - --document html --save-original
        """,
    )

    parser.add_argument("input", help="CSV or document file; '-' reads stdin")
    parser.add_argument(
        "-o",
        "--output",
        help="Output path. Defaults to chart-<hash>.svg/.json for charts and stdout for documents",
    )
    parser.add_argument(
        "--format",
        choices=["svg", "json"],
        default="svg",
        help="Chart output format (ignored with --document)",
    )
    parser.add_argument(
        "--chart-spec",
        help='Chart options as key=value[,key=value] or JSON, e.g. \'{"width":800,"title":"Revenue"}\'',
    )
    parser.add_argument("--width", type=float, help="Logical chart width")
    parser.add_argument("--height", type=float, help="Logical chart height")
    parser.add_argument("--title", help="Chart title")
    parser.add_argument("--text-color", help="Colour of all text labels")
    parser.add_argument("--background-color", help="Background fill colour")
    parser.add_argument(
        "--detect-from",
        choices=["first", "all"],
        default="first",
        help="Detect the key format from the first data row or from all rows",
    )
    parser.add_argument(
        "--document",
        choices=["html", "markdown"],
        help="Treat input as a document and replace its CSV code blocks with charts",
    )
    parser.add_argument(
        "--code-language",
        default="csv",
        help="Code block language label to process in document mode",
    )
    parser.add_argument(
        "--save-original",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Keep the original code block next to the chart in document mode",
    )
    parser.add_argument(
        "--container-class",
        default=DEFAULT_CONTAINER_CLASS,
        help="Class of the wrapper <div> used with --save-original",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print a summary of the input CSV and the parsed series, then exit",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log pipeline summaries"
    )
    parser.add_argument(
        "--print-defaults",
        action="store_true",
        help="Print default parameter values and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help=f"Show full tracebacks for debugging (also {DEBUG_ENV_VAR}=1).",
    )
    return parser


def _args_to_params(args) -> tuple[ChartOptions, DocumentOptions]:
    """
    Build option objects from parsed CLI args: defaults, then --chart-spec,
    then explicit flags.
    """
    d_chart, d_doc = get_default_params()
    chart = parse_chart_spec(getattr(args, "chart_spec", None), d_chart)

    overrides: Dict[str, Any] = {}
    for key in CHART_SPEC_KEYS:
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = _coerce_chart_value(key, value)
    if overrides:
        chart = replace(chart, **overrides)

    policy = (
        DetectionPolicy.ALL_ROWS
        if getattr(args, "detect_from", "first") == "all"
        else DetectionPolicy.FIRST_ROW
    )
    document = replace(
        d_doc,
        save_original=bool(getattr(args, "save_original", d_doc.save_original)),
        code_language=getattr(args, "code_language", None) or d_doc.code_language,
        container_class=getattr(args, "container_class", None)
        or d_doc.container_class,
        chart=chart,
        policy=policy,
    )
    return chart, document


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with CSVTextSource(path) as source:
        return source.read_text()


def _print_info(args, text: str, document: DocumentOptions) -> None:
    if args.input != "-":
        with CSVTextSource(args.input) as source:
            source.print_file_info()
    result = run_pipeline(text, document.chart, document.policy)
    print(result.summarize())
    if result.series:
        print(f"\nParsed {result.accepted_rows} rows:")
        print(series_frame(result.series).head())


def _default_output_name(text: str, suffix: str) -> Path:
    short_hash, _ = canonical_json_hash({"input": text})
    return Path(f"chart-{short_hash}{suffix}")


def _orchestrate(args, chart: ChartOptions, document: DocumentOptions) -> int:
    """Run one CLI invocation and return its exit code."""
    text = _read_input(args.input)

    if args.info:
        _print_info(args, text, document)
        return 0

    if args.document:
        transform = transform_html if args.document == "html" else transform_markdown
        out_text = transform(text, document)
        if args.output:
            Path(args.output).write_text(out_text, encoding="utf-8")
            logger.info(
                f"Wrote transformed document: {normalize_abs_posix(args.output)}"
            )
        else:
            sys.stdout.write(out_text)
        return 0

    result = run_pipeline(text, chart, document.policy, verbose=args.verbose)
    if result.chart is None:
        print(f"No chart produced: {result.summarize()}", file=sys.stderr)
        return EXIT_NO_CHART

    suffix = ".json" if args.format == "json" else ".svg"
    output = Path(args.output) if args.output else _default_output_name(text, suffix)
    if args.format == "json":
        payload = json.dumps(chart_to_dict(result.chart), indent=2)
        output.write_text(payload, encoding="utf-8")
    else:
        write_svg(result.chart, output)
    logger.info(
        f"Wrote chart ({result.descriptor.tag}, {len(result.series)} series): "
        f"{normalize_abs_posix(output)}"
    )
    print(str(output))
    return 0


def main() -> None:
    """
    CLI entry point. Parses arguments, builds option objects, then orchestrates.
    """
    argv = sys.argv[1:]

    # --print-defaults does not require an input path
    if "--print-defaults" in argv:
        d_chart, d_doc = get_default_params()
        payload = {
            "ChartOptions": sanitize_for_json(d_chart),
            "DocumentOptions": sanitize_for_json(d_doc),
        }
        print(json.dumps(payload, indent=2))
        return

    parser = _build_cli_parser()
    args = parser.parse_args(argv)
    # Enable debug mode via --debug flag or environment variable
    debug_mode = bool(
        getattr(args, "debug", False) or os.getenv(DEBUG_ENV_VAR, "") == "1"
    )
    if debug_mode:
        logger.setLevel(logging.DEBUG)
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        chart, document = _args_to_params(args)
        code = _orchestrate(args, chart, document)
    except (FileNotFoundError, ValueError, TypeError, CSVProcessingError) as e:
        # Concise, user-facing errors for common/user-correctable problems.
        logger.info(f"User-facing error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        # Unexpected/internal errors: log full exception. Show traceback only when debugging.
        logger.exception("Unhandled exception during execution")
        if debug_mode:
            import traceback

            traceback.print_exc()
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
            print(
                f"Run with --debug or set {DEBUG_ENV_VAR}=1 to see the full traceback.",
                file=sys.stderr,
            )
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()

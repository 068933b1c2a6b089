"""Gradio UI wrapper for the time-series chart pipeline.

Paste a CSV block to see the chart inline and download it as SVG, or paste a
whole HTML / Markdown document to have its CSV code blocks replaced by charts.
"""

import html
import logging
import os
import shutil
import time
import traceback
from dataclasses import replace
from pathlib import Path
from typing import Optional

import gradio as gr

from .document import transform_html, transform_markdown
from .formats import DetectionPolicy
from .main import get_default_params, parse_chart_spec
from .pipeline import run_pipeline
from .svg_writer import to_svg, write_svg
from .utils import canonical_json_hash, ensure_run_dir, write_text_report

logger = logging.getLogger(__name__)

RUN_ROOT = Path("output_gradio")
RETENTION_ENV_VAR = "TIMESERIES_CHART_RETENTION_KEEP"
DEFAULT_RETENTION_KEEP = 10

SAMPLE_CSV = """date,revenue,cost
2024-01-01,120,80
2024-01-02,135,82
2024-01-03,128,90
2024-01-04,150,95
"""


def _looks_like_run_ts(name: str) -> bool:
    # YYYYmmddTHHMMSS as produced by ensure_run_dir()
    return (
        len(name) >= 15
        and name[0:8].isdigit()
        and name[8] == "T"
        and name[9:15].isdigit()
    )


def _retention_keep() -> int:
    raw = os.getenv(RETENTION_ENV_VAR, str(DEFAULT_RETENTION_KEEP))
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            f"Invalid {RETENTION_ENV_VAR}={raw!r}, using {DEFAULT_RETENTION_KEEP}"
        )
        return DEFAULT_RETENTION_KEEP


def _prune_old_runs(run_root: Path, keep: Optional[int] = None) -> None:
    """
    Retention helper: keep only the newest `keep` subdirectories under `run_root`.

    keep defaults to TIMESERIES_CHART_RETENTION_KEEP (10); 0 or less disables
    pruning. Timestamp-named run directories are ordered by name, anything else
    by mtime. Symlinks and directories resolving outside run_root are skipped.
    Deletion failures are logged at WARNING and retried on a later run.
    """
    if keep is None:
        keep = _retention_keep()
    if keep <= 0:
        logger.debug(f"retention keep <=0 ({keep}) -> skipping prune")
        return
    if not run_root.is_dir():
        return

    subdirs = [p for p in run_root.iterdir() if p.is_dir()]
    if all(_looks_like_run_ts(p.name) for p in subdirs):
        newest_first = sorted(subdirs, key=lambda p: p.name, reverse=True)
    else:
        newest_first = sorted(subdirs, key=lambda p: p.stat().st_mtime, reverse=True)

    root_resolved = run_root.resolve()
    for d in newest_first[keep:]:
        if d.is_symlink():
            logger.warning(f"Skipping symlink during prune: {d}")
            continue
        if os.path.commonpath([str(root_resolved), str(d.resolve())]) != str(
            root_resolved
        ):
            logger.warning(f"Skipping prune of {d} - resolved outside run_root")
            continue
        try:
            shutil.rmtree(d)
            logger.info(f"Pruned old run dir: {d}")
        except OSError as e:
            logger.warning(f"Failed to prune {d}: {e}")


def _chart_options(chart_spec_raw: Optional[str], title: Optional[str]):
    d_chart, _ = get_default_params()
    chart = parse_chart_spec(chart_spec_raw, d_chart)
    if title and title.strip():
        chart = replace(chart, title=title.strip())
    return chart


def _policy(detect_from: Optional[str]) -> DetectionPolicy:
    return DetectionPolicy.ALL_ROWS if detect_from == "all" else DetectionPolicy.FIRST_ROW


def _run_pipeline(
    csv_text: Optional[str],
    chart_spec_raw: Optional[str] = None,
    title: Optional[str] = None,
    detect_from: str = "first",
):
    """
    Render one CSV block.

    Returns (html_embed, svg_path, summary_text); svg_path is None when no
    chart was produced or the inputs were rejected.
    """
    t0 = time.time()
    if not csv_text or not csv_text.strip():
        msg = "Error: paste a CSV block (header line plus at least two rows)."
        return msg, None, msg

    try:
        chart = _chart_options(chart_spec_raw, title)
    except ValueError as ve:
        msg = f"Chart spec parse error\n{ve}"
        logger.debug(f"parse_chart_spec ERROR: {ve}")
        return msg, None, msg

    try:
        result = run_pipeline(csv_text, chart, _policy(detect_from))
        summary = result.summarize()
        if result.chart is None:
            body = f"<p>No chart produced.</p><pre>{html.escape(summary)}</pre>"
            return body, None, summary

        short_hash, _ = canonical_json_hash(
            {"input": csv_text, "title": chart.title, "detect_from": detect_from}
        )
        run_dir = ensure_run_dir(prefix=str(RUN_ROOT))
        svg_path = write_svg(result.chart, run_dir / f"chart-{short_hash}.svg")
        write_text_report(summary, run_dir, short_hash)
        _prune_old_runs(RUN_ROOT)

        logger.info(
            f"_run_pipeline COMPLETE (duration_ms={(time.time() - t0) * 1000:.1f})"
        )
        return f"<div>{to_svg(result.chart)}</div>", str(svg_path), summary
    except Exception as e:
        tb = traceback.format_exc()
        msg = f"Error running pipeline\n{e}\n{tb}"
        logger.debug(f"_run_pipeline EXCEPTION: {e}\n{tb}")
        return msg, None, msg


def _run_document(
    document_text: Optional[str],
    doc_kind: str = "markdown",
    code_language: str = "csv",
    save_original: bool = False,
    chart_spec_raw: Optional[str] = None,
    detect_from: str = "first",
) -> str:
    """Transform a pasted document and return the result (or an error message)."""
    if not document_text:
        return ""
    _, d_doc = get_default_params()
    try:
        chart = _chart_options(chart_spec_raw, None)
    except ValueError as ve:
        return f"Chart spec parse error\n{ve}"
    options = replace(
        d_doc,
        save_original=bool(save_original),
        code_language=(code_language or d_doc.code_language).strip(),
        chart=chart,
        policy=_policy(detect_from),
    )
    transform = transform_html if doc_kind == "html" else transform_markdown
    return transform(document_text, options)


def _build_ui():
    d_chart, d_doc = get_default_params()
    with gr.Blocks() as demo:
        gr.Markdown("### Time-series chart generator")
        with gr.Row():
            chart_spec = gr.Textbox(
                label="Chart spec (optional) - key=value,... or JSON",
                placeholder=(
                    f"width={d_chart.width:g},height={d_chart.height:g},"
                    "background_color=#fff"
                ),
                lines=1,
            )
            detect_from = gr.Radio(
                label="Detect key format from",
                choices=["first", "all"],
                value="first",
            )

        with gr.Tab("CSV block"):
            csv_input = gr.Textbox(label="CSV", value=SAMPLE_CSV, lines=10)
            title = gr.Textbox(label="Title (optional)", value="")
            run_button = gr.Button("Render")
            output_html = gr.HTML(label="Chart")
            output_svg = gr.File(label="Download SVG")
            summary_box = gr.Textbox(label="Summary", lines=3, interactive=False)

            run_button.click(
                _run_pipeline,
                inputs=[csv_input, chart_spec, title, detect_from],
                outputs=[output_html, output_svg, summary_box],
            )

        with gr.Tab("Document"):
            with gr.Row():
                doc_kind = gr.Radio(
                    label="Document type",
                    choices=["markdown", "html"],
                    value="markdown",
                )
                code_language = gr.Textbox(
                    label="Code block language", value=d_doc.code_language
                )
                save_original = gr.Checkbox(
                    label="Keep original code block", value=d_doc.save_original
                )
            doc_input = gr.Textbox(
                label="Document",
                value=f"# Report\n\n```csv\n{SAMPLE_CSV}```\n",
                lines=12,
            )
            doc_button = gr.Button("Transform")
            doc_output = gr.Textbox(label="Transformed document", lines=12)

            doc_button.click(
                _run_document,
                inputs=[
                    doc_input,
                    doc_kind,
                    code_language,
                    save_original,
                    chart_spec,
                    detect_from,
                ],
                outputs=[doc_output],
            )

    return demo


if __name__ == "__main__":
    demo = _build_ui()
    demo.launch()

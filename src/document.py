"""
Document transform: replace CSV code blocks with inline SVG charts.

HTML input is handled with BeautifulSoup: every <pre><code class="language-csv">
block is run through the chart pipeline and replaced by the generated <svg>
(or wrapped together with the original block in a container <div> when
save_original is set). Markdown input is handled at the fence level. Blocks
the pipeline declines are left exactly as authored.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup  # type: ignore
from bs4.element import Tag

from .chart import ChartNode, ChartOptions, NodeKind
from .formats import DetectionPolicy
from .pipeline import run_pipeline
from .svg_writer import attr_text, to_svg

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_CLASS = "timeseries-chart-container"

_FENCE = re.compile(
    r"^(?P<indent>[ \t]{0,3})(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^\n`]*)\n"
    r"(?P<body>.*?)"
    r"^(?P=indent)(?P=fence)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)


@dataclass(frozen=True)
class DocumentOptions:
    """
    Options for the document transform.

    save_original has no default: whether the source block is kept next to the
    chart differs per deployment, so callers must choose.
    """

    save_original: bool
    code_language: str = "csv"
    container_class: str = DEFAULT_CONTAINER_CLASS
    chart: ChartOptions = field(default_factory=ChartOptions)
    policy: DetectionPolicy = DetectionPolicy.FIRST_ROW

    @property
    def language_class(self) -> str:
        return f"language-{self.code_language}"


def _chart_for(text: str, options: DocumentOptions) -> Optional[ChartNode]:
    result = run_pipeline(text, options.chart, options.policy)
    if result.chart is None:
        logger.debug(f"Block left untouched: {result.summarize()}")
    return result.chart


def _to_tag(soup: BeautifulSoup, node: ChartNode) -> Tag:
    tag = soup.new_tag(
        node.kind.value,
        attrs={name: attr_text(v) for name, v in node.attrs.items()},
    )
    if node.kind is NodeKind.TEXT and node.text is not None:
        tag.string = node.text
    for child in node.children:
        tag.append(_to_tag(soup, child))
    return tag


def _code_child(pre: Tag) -> Optional[Tag]:
    # The code element must be the first child of <pre>, ignoring whitespace
    for child in pre.children:
        if isinstance(child, Tag):
            return child if child.name == "code" else None
        if str(child).strip():
            return None
    return None


def transform_html(html: str, options: DocumentOptions) -> str:
    """
    Replace matching <pre><code> CSV blocks in an HTML fragment or document.

    Returns the (possibly unchanged) HTML as a string.
    """
    soup = BeautifulSoup(html, "html.parser")
    replaced = 0
    for pre in soup.find_all("pre"):
        code = _code_child(pre)
        if code is None:
            continue
        classes = code.get("class") or []
        if options.language_class not in classes:
            continue

        chart = _chart_for(code.get_text(), options)
        if chart is None:
            continue

        svg_tag = _to_tag(soup, chart)
        if options.save_original:
            container = soup.new_tag("div", attrs={"class": options.container_class})
            pre.replace_with(container)
            container.append(svg_tag)
            container.append(pre)
        else:
            pre.replace_with(svg_tag)
        replaced += 1

    logger.debug(f"transform_html replaced {replaced} block(s)")
    return str(soup)


def transform_markdown(markdown: str, options: DocumentOptions) -> str:
    """
    Replace fenced code blocks tagged with the language label by inline SVG.

    With save_original the chart and the untouched fence are wrapped in a
    container <div>, separated by blank lines so the fence still renders as
    code.
    """

    def _replace(match: "re.Match[str]") -> str:
        info = match.group("info").strip().split()
        if not info or info[0] != options.code_language:
            return match.group(0)
        chart = _chart_for(match.group("body"), options)
        if chart is None:
            return match.group(0)
        svg = to_svg(chart)
        if options.save_original:
            return (
                f'<div class="{options.container_class}">\n{svg}\n\n'
                f"{match.group(0)}\n\n</div>"
            )
        return svg

    return _FENCE.sub(_replace, markdown)

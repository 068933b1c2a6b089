"""Serialize ChartNode trees to SVG markup or JSON-ready dicts."""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Union

from .chart import ChartNode, NodeKind

logger = logging.getLogger(__name__)


def attr_text(value: Any) -> str:
    """
    Attribute value as written to markup.

    Floats are rounded to 3 decimals with trailing zeros dropped, so positions
    such as 183.33333333 become "183.333" and 40.0 becomes "40".
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        out = f"{value:.3f}".rstrip("0").rstrip(".")
        return "0" if out in ("", "-0") else out
    return str(value)


def _to_element(node: ChartNode) -> ET.Element:
    el = ET.Element(
        node.kind.value, {name: attr_text(v) for name, v in node.attrs.items()}
    )
    if node.kind is NodeKind.TEXT and node.text is not None:
        el.text = node.text
    for child in node.children:
        el.append(_to_element(child))
    return el


def to_svg(node: ChartNode) -> str:
    """Render a chart tree as an SVG markup string (no XML declaration)."""
    return ET.tostring(_to_element(node), encoding="unicode")


def write_svg(node: ChartNode, path: Union[str, Path]) -> Path:
    """Write the chart as a standalone UTF-8 .svg file and return its path."""
    target = Path(path)
    payload = '<?xml version="1.0" encoding="UTF-8"?>\n' + to_svg(node) + "\n"
    target.write_bytes(payload.encode("utf-8"))
    logger.debug(f"Wrote SVG chart to {target}")
    return target


def chart_to_dict(node: ChartNode) -> Dict[str, Any]:
    """Nested dict view of the tree: kind, attrs, optional text, children."""
    out: Dict[str, Any] = {"kind": node.kind.value, "attrs": dict(node.attrs)}
    if node.text is not None:
        out["text"] = node.text
    if node.children:
        out["children"] = [chart_to_dict(child) for child in node.children]
    return out

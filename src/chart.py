"""
Chart renderer - pure function from series to a declarative primitive tree.

render_chart() takes the validated series, the axis kind and layout options and
returns an immutable ChartNode tree (svg root, groups, rects, lines, texts,
paths). Nothing is drawn here; serialization lives in svg_writer and the
document transform splices the tree into HTML.

Layout follows the classic margin convention: fixed margins are subtracted
from the logical width/height to get the plot area, the y scale runs from
zero to a nice upper bound, and every series is drawn as a monotone cubic
curve (PCHIP) so lines never overshoot between data points.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Sequence, Union

import matplotlib
import numpy as np
from matplotlib.colors import to_hex
from scipy.interpolate import PchipInterpolator

from .scales import LinearScale, TimeScale
from .series import Series

# 10-entry categorical palette; tab10 is the classic category10 scheme
CATEGORY10: tuple[str, ...] = tuple(
    to_hex(color) for color in matplotlib.colormaps["tab10"].colors
)

SVG_NS = "http://www.w3.org/2000/svg"

X_TICK_SPACING = 80
Y_TICK_COUNT = 5
LEGEND_ITEM_SPACING = 100
LEGEND_SWATCH_SIZE = 12
TICK_SIZE = 6
GRID_COLOR = "#ccc"
AXIS_COLOR = "#000"


class NodeKind(Enum):
    SVG = "svg"
    GROUP = "g"
    RECT = "rect"
    LINE = "line"
    TEXT = "text"
    PATH = "path"


@dataclass(frozen=True)
class ChartNode:
    """
    One drawing primitive.

    attrs is a read-only mapping of SVG attribute name -> value; text is the
    literal payload of TEXT nodes.
    """

    kind: NodeKind
    attrs: Mapping[str, Any] = field(default_factory=dict)
    children: tuple["ChartNode", ...] = ()
    text: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))
        object.__setattr__(self, "children", tuple(self.children))

    def get(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    def iter(self, kind: Optional[NodeKind] = None) -> Iterator["ChartNode"]:
        """Depth-first walk over this node and its descendants."""
        if kind is None or self.kind is kind:
            yield self
        for child in self.children:
            yield from child.iter(kind)

    def find_group(self, css_class: str) -> Optional["ChartNode"]:
        for node in self.iter(NodeKind.GROUP):
            if node.get("class") == css_class:
                return node
        return None


@dataclass(frozen=True)
class Margins:
    top: float = 40
    right: float = 20
    bottom: float = 30
    left: float = 50


MARGINS = Margins()


@dataclass(frozen=True)
class ChartOptions:
    """
    Layout and styling options for render_chart().

    width/height: logical size of the viewBox (the svg itself scales to 100%).
    title: optional centred title above the plot.
    text_color: fill for every text label.
    background_color: optional fill for a full-size rect behind everything.
    """

    width: float = 640
    height: float = 300
    title: Optional[str] = None
    text_color: str = "#000"
    background_color: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")


# -------------------------
# Primitive factories
# -------------------------
def rect(x: float, y: float, w: float, h: float, **attrs: Any) -> ChartNode:
    return ChartNode(NodeKind.RECT, {"x": x, "y": y, "width": w, "height": h, **attrs})


def line(x1: float, y1: float, x2: float, y2: float, **attrs: Any) -> ChartNode:
    base = {"x1": x1, "y1": y1, "x2": x2, "y2": y2, "stroke": AXIS_COLOR}
    base.update(attrs)
    return ChartNode(NodeKind.LINE, base)


def text(x: float, y: float, value: Union[str, float], **attrs: Any) -> ChartNode:
    base = {"x": x, "y": y, "fill": "#000", "font-size": 10, "text-anchor": "middle"}
    base.update(attrs)
    return ChartNode(NodeKind.TEXT, base, text=str(value))


def group(css_class: str, children: Sequence[ChartNode]) -> ChartNode:
    return ChartNode(NodeKind.GROUP, {"class": css_class}, tuple(children))


def svg_root(width: float, height: float, children: Sequence[ChartNode]) -> ChartNode:
    return ChartNode(
        NodeKind.SVG,
        {
            "xmlns": SVG_NS,
            "viewBox": f"0 0 {_fmt(width)} {_fmt(height)}",
            "preserveAspectRatio": "none",
            "width": "100%",
            "height": "100%",
        },
        tuple(children),
    )


def series_color(index: int) -> str:
    """Palette entry for the series at `index`, cycling after ten."""
    return CATEGORY10[index % len(CATEGORY10)]


def _fmt(value: float) -> str:
    out = f"{float(value):.3f}".rstrip("0").rstrip(".")
    return "0" if out in ("", "-0") else out


def monotone_path(xs: Sequence[float], ys: Sequence[float]) -> str:
    """
    SVG path data for a monotone cubic curve through (xs, ys) in given order.

    Tangents come from scipy's PchipInterpolator, and each Hermite segment is
    written as a cubic Bezier with control points one third along the segment.
    Strictly decreasing x (newest-first data) is fitted on the reversed points
    and drawn in input order. Mixed or repeated x gets straight segments.
    """
    px = np.asarray(xs, dtype=float)
    py = np.asarray(ys, dtype=float)
    if px.size == 0:
        return ""
    head = f"M{_fmt(px[0])},{_fmt(py[0])}"
    if px.size == 1:
        return head + "Z"
    steps = np.diff(px)
    if np.all(steps > 0):
        slopes = PchipInterpolator(px, py).derivative()(px)
    elif np.all(steps < 0):
        slopes = PchipInterpolator(px[::-1], py[::-1]).derivative()(px)
    else:
        return head + "".join(f"L{_fmt(x)},{_fmt(y)}" for x, y in zip(px[1:], py[1:]))

    parts = [head]
    for i in range(px.size - 1):
        x0, y0, x1, y1 = px[i], py[i], px[i + 1], py[i + 1]
        dx = (x1 - x0) / 3
        parts.append(
            "C{},{},{},{},{},{}".format(
                _fmt(x0 + dx),
                _fmt(y0 + dx * slopes[i]),
                _fmt(x1 - dx),
                _fmt(y1 - dx * slopes[i + 1]),
                _fmt(x1),
                _fmt(y1),
            )
        )
    return "".join(parts)


def render_chart(
    series: Sequence[Series],
    is_temporal: bool,
    options: Optional[ChartOptions] = None,
) -> ChartNode:
    """
    Build the chart document for already-validated, non-empty series.

    Children are emitted back to front: background, title, legend, axes,
    x ticks, y ticks with gridlines, then one path per series.
    """
    opt = options or ChartOptions()
    m = MARGINS
    W, H = opt.width, opt.height
    w = W - m.left - m.right
    h = H - m.top - m.bottom
    text_col = opt.text_color

    xs = [p.x for s in series for p in s.points]
    ys = [p.y for s in series for p in s.points]

    x_range = (m.left, m.left + w)
    if is_temporal:
        x_scale: Union[TimeScale, LinearScale] = TimeScale((min(xs), max(xs)), x_range)
    else:
        x_scale = LinearScale((float(min(xs)), float(max(xs))), x_range)
    y_scale = LinearScale((0.0, float(max(ys))), (m.top + h, m.top)).nice()

    children: list[ChartNode] = []

    if opt.background_color:
        children.append(rect(0, 0, W, H, fill=opt.background_color))
    if opt.title:
        children.append(text(W / 2, 20, opt.title, **{"font-size": 16, "fill": text_col}))

    if len(series) > 1:
        legend_y = m.top - 20
        entries = []
        for i, s in enumerate(series):
            x0 = m.left + i * LEGEND_ITEM_SPACING
            entries.append(
                rect(
                    x0,
                    legend_y - 8,
                    LEGEND_SWATCH_SIZE,
                    LEGEND_SWATCH_SIZE,
                    fill=series_color(i),
                )
            )
            entries.append(
                text(
                    x0 + 16,
                    legend_y + 2,
                    s.name,
                    **{"text-anchor": "start", "fill": text_col},
                )
            )
        children.append(group("legend", entries))

    children.append(
        group(
            "axes",
            [
                line(m.left, m.top + h, m.left + w, m.top + h),
                line(m.left, m.top, m.left, m.top + h),
            ],
        )
    )

    x_count = max(1, int(w // X_TICK_SPACING))
    x_fmt = x_scale.tick_format(x_count)
    x_ticks = []
    for t in x_scale.ticks(x_count):
        x = x_scale(t)
        x_ticks.append(line(x, m.top + h, x, m.top + h + TICK_SIZE))
        x_ticks.append(text(x, m.top + h + 20, x_fmt(t), fill=text_col))
    children.append(group("x-axis", x_ticks))

    y_fmt = y_scale.tick_format(Y_TICK_COUNT)
    y_ticks = []
    for t in y_scale.ticks(Y_TICK_COUNT):
        y = y_scale(t)
        y_ticks.append(line(m.left - TICK_SIZE, y, m.left, y))
        y_ticks.append(
            text(m.left - 10, y + 3, y_fmt(t), **{"text-anchor": "end", "fill": text_col})
        )
        y_ticks.append(
            line(
                m.left,
                y,
                m.left + w,
                y,
                **{"stroke": GRID_COLOR, "stroke-dasharray": "2,2"},
            )
        )
    children.append(group("y-axis", y_ticks))

    paths = []
    for i, s in enumerate(series):
        paths.append(
            ChartNode(
                NodeKind.PATH,
                {
                    "d": monotone_path(
                        [x_scale(p.x) for p in s.points],
                        [y_scale(p.y) for p in s.points],
                    ),
                    "fill": "none",
                    "stroke": series_color(i),
                    "stroke-width": 1.5,
                    "stroke-linejoin": "round",
                    "stroke-linecap": "round",
                    "data-series": s.name,
                },
            )
        )
    children.append(group("series", paths))

    return svg_root(W, H, children)

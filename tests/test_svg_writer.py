import json
import xml.etree.ElementTree as ET

from src.pipeline import build_chart
from src.svg_writer import attr_text, chart_to_dict, to_svg, write_svg

SVG = "{http://www.w3.org/2000/svg}"
CSV = "Date,Revenue,Users\n2024-01-01,100,5\n2024-01-02,150,8\n2024-01-03,120,7\n"


def test_attr_text_formatting():
    assert attr_text(40.0) == "40"
    assert attr_text(183.33333333) == "183.333"
    assert attr_text(-0.0001) == "0"
    assert attr_text(12) == "12"
    assert attr_text("2,2") == "2,2"
    assert attr_text(True) == "true"


def test_to_svg_is_parseable_markup():
    chart = build_chart(CSV)
    markup = to_svg(chart)
    root = ET.fromstring(markup)
    assert root.tag == f"{SVG}svg"
    assert root.get("viewBox") == "0 0 640 300"
    paths = root.findall(f".//{SVG}path")
    assert len(paths) == 2
    assert paths[0].get("stroke-width") == "1.5"
    legend_labels = [
        t.text for g in root.iter(f"{SVG}g") if g.get("class") == "legend"
        for t in g.iter(f"{SVG}text")
    ]
    assert legend_labels == ["Revenue", "Users"]


def test_text_payload_is_escaped():
    chart = build_chart("date,a<b & c\n2024-01-01,1\n2024-01-02,2\n")
    markup = to_svg(chart)
    assert "a&lt;b &amp; c" in markup
    ET.fromstring(markup)


def test_write_svg(tmp_path):
    target = write_svg(build_chart(CSV), tmp_path / "chart.svg")
    content = target.read_text(encoding="utf-8")
    assert content.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<path" in content


def test_chart_to_dict_is_json_ready():
    data = chart_to_dict(build_chart(CSV))
    assert data["kind"] == "svg"
    kinds = [child["kind"] for child in data["children"]]
    assert kinds == ["g", "g", "g", "g", "g"]
    json.dumps(data)

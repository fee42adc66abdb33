"""Tests for stroke baking and annotation."""

import xml.etree.ElementTree as ET

import pytest

from strokegraph.core import svg
from strokegraph.core.baker import BAKED_GROUP_ID, annotate, bake
from strokegraph.core.operations import apply_transform
from strokegraph.errors import ParseFailure


def _baked_groups(doc: str) -> list[ET.Element]:
    root = ET.fromstring(doc)
    groups = [el for el in root.iter() if el.get("id") == BAKED_GROUP_ID]
    assert len(groups) == 1
    return list(groups[0])


def test_bake_counts_highest_stroke_index(ei_svg: str) -> None:
    baked = bake(ei_svg)

    assert baked.count == 5
    assert [g.get("data-stroke") for g in _baked_groups(baked.svg)] == ["1", "2", "3", "4", "5"]


def test_bake_groups_hold_clones_of_their_strokes(ei_svg: str) -> None:
    groups = _baked_groups(bake(ei_svg).svg)

    for index, group in enumerate(groups, start=1):
        paths = [el for el in group if svg.local_name(el.tag) == "path"]
        assert len(paths) == 1
        assert paths[0].get("id") == f"kvg:06c38-s{index}"


def test_bake_strips_decorations_and_hides_original_strokes(ei_svg: str) -> None:
    baked = bake(ei_svg)
    root = ET.fromstring(baked.svg)

    assert "StrokeNumbers" not in baked.svg
    assert not [el for el in root.iter() if svg.local_name(el.tag) == "text"]
    container = next(el for el in root.iter() if el.get("id") == "kvg:StrokePaths_06c38")
    assert container.get("display") == "none"
    assert container.get("data-ignore") == "1"


def test_bake_normalizes_root(ei_svg: str) -> None:
    root = ET.fromstring(bake(ei_svg).svg)

    assert root.get("width") == "100%"
    assert root.get("height") == "100%"
    assert root.get("viewBox") == "0 0 109 109"
    assert root.get("preserveAspectRatio") == "xMidYMid meet"


def test_bake_is_idempotent(ei_svg: str) -> None:
    once = bake(ei_svg)
    twice = bake(once.svg)

    assert twice.count == once.count == 5
    assert len(_baked_groups(twice.svg)) == 5


def test_bake_collects_every_drawable_under_a_carrier_group() -> None:
    doc = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<g id="x-s1"><path d="M0,0"/><line x1="0" y1="0" x2="1" y2="1"/></g>'
        '<path id="x-s2" d="M1,1"/>'
        "</svg>"
    )
    groups = _baked_groups(bake(doc).svg)

    assert [len(g) for g in groups] == [2, 1]


def test_bake_count_uses_max_index_for_sparse_strokes() -> None:
    doc = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<path id="x-s1" d="M0,0"/><path id="x-s4" d="M1,1"/>'
        "</svg>"
    )
    baked = bake(doc)

    assert baked.count == 4
    assert [g.get("data-stroke") for g in _baked_groups(baked.svg)] == ["1", "4"]


def test_bake_without_carriers_has_zero_count() -> None:
    doc = '<svg xmlns="http://www.w3.org/2000/svg"><path d="M0,0"/></svg>'

    assert bake(doc).count == 0


def test_bake_returns_non_svg_root_unchanged() -> None:
    doc = "<html><path id='x-s1'/></html>"
    baked = bake(doc)

    assert baked.svg == doc
    assert baked.count == 0


def test_bake_rejects_malformed_xml() -> None:
    with pytest.raises(ParseFailure):
        bake("<svg><g></svg>")


def test_annotate_tags_leaves_with_nearest_carrier(ei_svg: str) -> None:
    root = ET.fromstring(annotate(ei_svg))
    paths = [el for el in root.iter() if svg.local_name(el.tag) == "path"]

    assert [p.get("data-stroke") for p in paths] == ["1", "2", "3", "4", "5"]


def test_annotate_marks_drawables_outside_carriers_as_ignorable() -> None:
    doc = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<g id="x-s1"><g><path d="M0,0"/></g></g>'
        '<rect width="1" height="1"/>'
        "</svg>"
    )
    root = ET.fromstring(annotate(doc))
    path = next(el for el in root.iter() if svg.local_name(el.tag) == "path")
    rect = next(el for el in root.iter() if svg.local_name(el.tag) == "rect")

    assert path.get("data-stroke") == "1"
    assert rect.get("data-ignore") == "1"
    assert rect.get("data-stroke") is None


def test_annotate_can_keep_decorations(ei_svg: str) -> None:
    assert "StrokeNumbers" in annotate(ei_svg, strip_decorations=False)
    assert "StrokeNumbers" not in annotate(ei_svg)


def test_bake_places_strokes_at_root_outside_earlier_wrappers(ei_svg: str) -> None:
    moved = apply_transform(annotate(ei_svg), 30, 0, 1, 1)
    root = ET.fromstring(bake(moved).svg)

    assert root[-1].get("id") == BAKED_GROUP_ID
    assert root[-2].get("transform") == "translate(30,0) scale(1,1)"
    assert bake(moved).count == 5

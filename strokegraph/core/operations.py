"""Pure transforms over stroke-indexed SVG documents.

Every function takes SVG text and returns new SVG text; nothing is
mutated in place.  Parse failures degrade to returning the input
unchanged (or ``0`` for :func:`count_visible_strokes`) so one bad
artifact never breaks the rest of a graph.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET

import structlog

from strokegraph.core import svg
from strokegraph.errors import ParseFailure

logger = structlog.get_logger(__name__)

# Elements that must stay direct children of the root to keep applying.
_ROOT_ONLY_TAGS = frozenset({"style", "defs"})

# Elements whose stroke styling is enforced on prepared glyphs.
_STROKED_TAGS = frozenset({"path", "polyline", "line"})

_STYLE_RULE = """
path, line, polyline {{
  stroke: {color} !important;
  stroke-width: {width} !important;
  stroke-linecap: round !important;
  stroke-linejoin: round !important;
  fill: none !important;
  vector-effect: non-scaling-stroke;
}}
"""


def _parse_svg(text: str, op: str) -> ET.Element | None:
    """Parse *text*, returning ``None`` (and logging) when unusable."""
    try:
        root = svg.parse(text)
    except ParseFailure as exc:
        logger.warning("operation_parse_failed", op=op, error=str(exc))
        return None
    if not svg.is_svg_root(root):
        return None
    return root


# ------------------------------------------------------------------
# Range selection
# ------------------------------------------------------------------


def select_range(doc: str, start: int, end: int) -> str:
    """Show only strokes ``start..end`` (inclusive).

    Decorations (``data-ignore="1"``) are always hidden.  Every
    ``data-stroke`` element outside the range is hidden; every one inside
    is shown together with its non-decoration ancestors, whether they
    were hidden by a ``display`` attribute or by a ``style`` declaration,
    so a hidden parent can never suppress an in-range stroke.

    Args:
        doc: Baked or annotated SVG text.
        start: First stroke to show (1-based).
        end: Last stroke to show.
    """
    root = _parse_svg(doc, "select_range")
    if root is None:
        return doc
    low, high = min(start, end), max(start, end)

    tagged = [el for el in root.iter() if el.get("data-stroke") is not None or el.get("data-ignore") is not None]
    for el in tagged:
        el.attrib.pop("display", None)
        el.attrib.pop("opacity", None)

    for el in tagged:
        if el.get("data-ignore") == "1":
            el.set("display", "none")

    strokes = [el for el in tagged if el.get("data-stroke") is not None]
    for el in strokes:
        el.set("display", "none")

    parents = svg.parent_map(root)
    for el in strokes:
        index = _int_or_zero(el.get("data-stroke"))
        if low <= index <= high:
            svg.unhide(el)
            for ancestor in svg.ancestors(el, parents):
                if ancestor.get("data-ignore") != "1":
                    svg.unhide(ancestor)

    return svg.serialize(root)


# ------------------------------------------------------------------
# Affine transform
# ------------------------------------------------------------------


def apply_transform(
    doc: str,
    tx: float | None = 0,
    ty: float | None = 0,
    sx: float | None = 1,
    sy: float | None = 1,
) -> str:
    """Wrap the root's content in one translate-then-scale group.

    ``<style>`` and ``<defs>`` stay at the root.  Missing offsets count
    as 0 and missing or zero scales as 1.
    """
    root = _parse_svg(doc, "apply_transform")
    if root is None:
        return doc

    group = svg.make_element(
        root,
        "g",
        transform=(
            f"translate({svg.format_number(tx or 0)},{svg.format_number(ty or 0)}) "
            f"scale({svg.format_number(sx or 1)},{svg.format_number(sy or 1)})"
        ),
    )
    for child in list(root):
        if svg.local_name(child.tag) not in _ROOT_ONLY_TAGS:
            root.remove(child)
            group.append(child)
    root.append(group)
    return svg.serialize(root)


# ------------------------------------------------------------------
# Composition
# ------------------------------------------------------------------


def composite(doc_a: str, doc_b: str) -> str:
    """Paint *doc_b* over *doc_a* by appending B's root children to A.

    Identical inputs short-circuit to *doc_a*.  Overlapping geometry is
    not deduplicated.
    """
    if doc_a == doc_b:
        return doc_a
    root_a = _parse_svg(doc_a, "composite")
    root_b = _parse_svg(doc_b, "composite")
    if root_a is None or root_b is None:
        return doc_a

    for child in root_b:
        root_a.append(copy.deepcopy(child))
    return svg.serialize(root_a)


def composite_alpha(
    doc_a: str,
    doc_b: str,
    alpha_a: float = 1,
    alpha_b: float = 1,
    swap: bool = False,
) -> str:
    """Alpha-blend two documents.

    A's children and a copy of B's children are each wrapped in a group
    carrying the clamped opacity.  B paints over A unless *swap* is set.
    """
    root_a = _parse_svg(doc_a, "composite_alpha")
    root_b = _parse_svg(doc_b, "composite_alpha")
    if root_a is None or root_b is None:
        return doc_a

    group_a = svg.make_element(root_a, "g", opacity=svg.format_number(_clamp01(alpha_a)))
    for child in list(root_a):
        group_a.append(child)

    group_b = svg.make_element(root_a, "g", opacity=svg.format_number(_clamp01(alpha_b)))
    for child in root_b:
        group_b.append(copy.deepcopy(child))

    root_a[:] = [group_b, group_a] if swap else [group_a, group_b]
    return svg.serialize(root_a)


# ------------------------------------------------------------------
# Styling
# ------------------------------------------------------------------


def force_stroke_color(doc: str, color: str = "#fff", width: float = 3) -> str:
    """Enforce uniform stroke styling with fill disabled.

    Applied twice over: once as an injected ``<style>`` rule and once as
    explicit attributes on every path/polyline/line, since consumers may
    drop injected styles on serialization.  Returns *doc* unchanged if it
    cannot be parsed.
    """
    root = _parse_svg(doc, "force_stroke_color")
    if root is None:
        return doc

    width_text = svg.format_number(width)
    style = svg.make_element(root, "style")
    style.text = _STYLE_RULE.format(color=color, width=width_text)
    root.insert(0, style)

    for el in root.iter():
        if svg.local_name(el.tag) in _STROKED_TAGS:
            el.set("stroke", color)
            el.set("stroke-width", width_text)
            el.set("stroke-linecap", "round")
            el.set("stroke-linejoin", "round")
            el.set("fill", "none")
            el.set("vector-effect", "non-scaling-stroke")

    return svg.serialize(root)


# ------------------------------------------------------------------
# Counting
# ------------------------------------------------------------------


def count_visible_strokes(doc: str) -> int:
    """Count the strokes a viewer would actually see.

    Visible ``data-stroke`` leaves are preferred.  If none are visible,
    visible drawables and groups are attributed to their nearest
    ``-s<N>`` carrier instead.  An element is hidden when it, or any
    ancestor, has ``display`` none.

    Returns:
        ``max(distinct visible indices, highest visible index)``, or 0
        when nothing matches or *doc* cannot be parsed.
    """
    root = _parse_svg(doc, "count_visible_strokes")
    if root is None:
        return 0
    parents = svg.parent_map(root)

    def hidden(el: ET.Element) -> bool:
        return svg.is_hidden(el) or any(svg.is_hidden(a) for a in svg.ancestors(el, parents))

    visible: set[int] = set()
    for el in root.iter():
        if not svg.is_drawable(el) or el.get("data-stroke") is None:
            continue
        if el.get("data-ignore") == "1" or hidden(el):
            continue
        index = _int_or_zero(el.get("data-stroke"))
        if index > 0:
            visible.add(index)

    if not visible:
        for el in root.iter():
            if not (svg.is_drawable(el) or svg.local_name(el.tag) == "g"):
                continue
            if el.get("data-ignore") == "1" or hidden(el):
                continue
            index = svg.owning_index(el, parents)
            if index is not None and index > 0:
                visible.add(index)

    if not visible:
        return 0
    return max(len(visible), max(visible))


def _int_or_zero(value: str | None) -> int:
    try:
        return int(float(value or 0))
    except (ValueError, OverflowError):
        return 0


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))

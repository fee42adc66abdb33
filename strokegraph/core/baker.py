"""Stroke baking and annotation of raw KanjiVG sources.

KanjiVG marks the element that owns a stroke with an id ending in
``-s<N>`` (a *carrier*).  Two normal forms are produced from a raw
source:

- :func:`bake` consolidates every drawable under carriers of the same
  index into one ``<g data-stroke="N">`` group, in ascending order.
- :func:`annotate` leaves the tree alone and only tags each drawable
  leaf with the index of its nearest carrier (or as ignorable).

Both strip numbering/grid/guideline decorations and normalise the root
for fill-the-container rendering.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET

import structlog

from strokegraph.core import svg
from strokegraph.models.glyph import BakedGlyph

logger = structlog.get_logger(__name__)

#: Id of the group that holds the consolidated stroke groups.
BAKED_GROUP_ID = "__baked_strokes__"


def bake(raw: str) -> BakedGlyph:
    """Consolidate a source into one indexed group per stroke.

    The original stroke container is kept but hidden and marked
    ``data-ignore`` so range selection never shows it again.  Any group
    left by an earlier bake is discarded first, so baking is idempotent.

    Args:
        raw: Raw or annotated SVG text.

    Returns:
        :class:`BakedGlyph` whose ``count`` is the highest stroke index
        (or the number of distinct indices when none is positive).  A
        source without carriers yields ``count == 0``.

    Raises:
        ParseFailure: If *raw* is not well-formed XML.
    """
    root = svg.parse(raw)
    if not svg.is_svg_root(root):
        return BakedGlyph(svg=raw, count=0)

    svg.remove_decorations(root)
    svg.normalize_root(root)
    _drop_baked_groups(root)

    carriers: list[tuple[int, ET.Element]] = []
    for el in root.iter():
        index = svg.stroke_index(el)
        if index is not None:
            carriers.append((index, el))

    buckets: dict[int, ET.Element] = {}
    for index, carrier in carriers:
        wrap = buckets.get(index)
        if wrap is None:
            wrap = svg.make_element(root, "g", **{"data-stroke": str(index)})
            buckets[index] = wrap
        for el in carrier.iter():
            if svg.is_drawable(el):
                wrap.append(copy.deepcopy(el))

    for el in root.iter():
        if el.get("id", "").startswith(svg.STROKE_CONTAINER_PREFIX):
            el.set("display", "none")
            el.set("data-ignore", "1")

    baked = svg.make_element(root, "g", id=BAKED_GROUP_ID)
    indices = sorted(buckets)
    count = 0
    for index in indices:
        wrap = buckets[index]
        if len(wrap) > 0:
            baked.append(wrap)
            count = max(count, index)
    root.append(baked)

    count = count or len(indices)
    logger.debug("glyph_baked", carriers=len(carriers), groups=len(baked), count=count)
    return BakedGlyph(svg=svg.serialize(root), count=count)


def annotate(raw: str, strip_decorations: bool = True) -> str:
    """Tag every drawable leaf with its owning stroke index.

    Leaves whose nearest self-or-ancestor carrier is index ``N`` get
    ``data-stroke="N"``; leaves outside any carrier get
    ``data-ignore="1"``.

    Args:
        raw: Raw SVG text.
        strip_decorations: Remove numbering/grid/guideline groups first.

    Returns:
        The annotated, root-normalised SVG text.

    Raises:
        ParseFailure: If *raw* is not well-formed XML.
    """
    root = svg.parse(raw)
    if strip_decorations:
        svg.remove_decorations(root)

    parents = svg.parent_map(root)
    tagged = ignored = 0
    for el in root.iter():
        if not svg.is_drawable(el):
            continue
        index = svg.owning_index(el, parents)
        if index is None:
            el.set("data-ignore", "1")
            ignored += 1
        else:
            el.set("data-stroke", str(index))
            tagged += 1

    if svg.is_svg_root(root):
        svg.normalize_root(root)

    logger.debug("glyph_annotated", tagged=tagged, ignored=ignored)
    return svg.serialize(root)


def _drop_baked_groups(root: ET.Element) -> None:
    """Remove groups produced by a previous :func:`bake`."""
    parents = svg.parent_map(root)
    for el in [e for e in root.iter() if e.get("id") == BAKED_GROUP_ID]:
        parent = parents.get(el)
        if parent is not None:
            parent.remove(el)

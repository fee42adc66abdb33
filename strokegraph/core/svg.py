"""Thin XML helpers shared by the baker and the SVG operations.

Parsing goes through ``defusedxml`` because glyph sources come from the
network; building and serializing uses the standard ``ElementTree`` API.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring

from strokegraph.errors import ParseFailure

SVG_NS = "http://www.w3.org/2000/svg"
KVG_NS = "http://kanjivg.tagaini.net"
XLINK_NS = "http://www.w3.org/1999/xlink"

# Serialize SVG as the default namespace instead of ``ns0:``.
ET.register_namespace("", SVG_NS)
ET.register_namespace("kvg", KVG_NS)
ET.register_namespace("xlink", XLINK_NS)

DRAWABLE_TAGS: frozenset[str] = frozenset(
    {"path", "polyline", "line", "circle", "ellipse", "rect", "polygon"}
)

DECORATION_ID_PREFIXES: tuple[str, ...] = (
    "kvg:StrokeNumbers_",
    "kvg:Numbers_",
    "kvg:Grid_",
    "kvg:Guideline_",
)

STROKE_CONTAINER_PREFIX = "kvg:StrokePaths_"
STROKE_ID_RE = re.compile(r"-s(\d+)$")
_DISPLAY_NONE_RE = re.compile(r"\s*display\s*:\s*none\b", re.IGNORECASE)

DEFAULT_VIEWBOX = "0 0 109 109"


def parse(text: str) -> ET.Element:
    """Parse *text* and return the document root.

    Raises:
        ParseFailure: If *text* is not well-formed or uses forbidden
            XML constructs (external entities and the like).
    """
    try:
        return fromstring(text)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise ParseFailure(str(exc)) from exc


def serialize(root: ET.Element) -> str:
    """Serialize *root* to text without an XML declaration."""
    return ET.tostring(root, encoding="unicode")


def local_name(tag: object) -> str:
    """Return the lowercase tag name without its ``{namespace}`` part."""
    if not isinstance(tag, str):
        # Comments and processing instructions carry a factory as tag.
        return ""
    return tag.rsplit("}", 1)[-1].lower()


def namespace_of(element: ET.Element) -> str:
    """Return the ``{namespace}`` prefix of *element*'s tag, or ``""``."""
    tag = element.tag
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[: tag.index("}") + 1]
    return ""


def make_element(like: ET.Element, name: str, **attrs: str) -> ET.Element:
    """Create a *name* element in the same namespace as *like*."""
    return ET.Element(namespace_of(like) + name, attrs)


def is_svg_root(root: ET.Element) -> bool:
    """Return ``True`` if *root* is an ``<svg>`` element."""
    return local_name(root.tag) == "svg"


def parent_map(root: ET.Element) -> dict[ET.Element, ET.Element]:
    """Map every element below *root* to its parent."""
    return {child: parent for parent in root.iter() for child in parent}


def ancestors(
    element: ET.Element,
    parents: dict[ET.Element, ET.Element],
) -> Iterator[ET.Element]:
    """Yield the ancestors of *element*, nearest first, excluding the root."""
    current = parents.get(element)
    while current is not None and current in parents:
        yield current
        current = parents.get(current)


def stroke_index(element: ET.Element) -> Optional[int]:
    """Return the stroke index encoded in *element*'s id, if any."""
    match = STROKE_ID_RE.search(element.get("id", ""))
    return int(match.group(1)) if match else None


def is_drawable(element: ET.Element) -> bool:
    """Return ``True`` for the drawable primitive tags."""
    return local_name(element.tag) in DRAWABLE_TAGS


def is_hidden(element: ET.Element) -> bool:
    """Return ``True`` if *element* itself is hidden via display none."""
    if element.get("display", "").strip().lower() == "none":
        return True
    style = element.get("style", "").lower().replace(" ", "")
    return "display:none" in style


def unhide(element: ET.Element) -> None:
    """Undo what :func:`is_hidden` detects on *element*.

    Drops the ``display`` attribute and any ``display: none`` declaration
    from ``style``; other declarations are kept.
    """
    element.attrib.pop("display", None)
    style = element.get("style")
    if style is None:
        return
    kept = [decl.strip() for decl in style.split(";") if decl.strip() and not _DISPLAY_NONE_RE.match(decl)]
    if kept:
        element.set("style", ";".join(kept))
    else:
        del element.attrib["style"]


def remove_decorations(root: ET.Element) -> int:
    """Drop stroke-number, grid and guideline groups from *root*.

    Returns:
        Number of elements removed.
    """
    parents = parent_map(root)
    doomed = [
        el
        for el in root.iter()
        if el is not root and el.get("id", "").startswith(DECORATION_ID_PREFIXES)
    ]
    removed = 0
    for el in doomed:
        parent = parents.get(el)
        # A decoration nested in another decoration is already gone.
        if parent is not None and el in list(parent):
            parent.remove(el)
            removed += 1
    return removed


def normalize_root(root: ET.Element) -> None:
    """Make *root* fill its container with resolution-independent strokes."""
    root.attrib.pop("width", None)
    root.attrib.pop("height", None)
    root.set("width", "100%")
    root.set("height", "100%")
    root.set("viewBox", root.get("viewBox") or DEFAULT_VIEWBOX)
    root.set("vector-effect", "non-scaling-stroke")
    root.set("preserveAspectRatio", "xMidYMid meet")


def format_number(value: float) -> str:
    """Format a number for an attribute: ``1`` rather than ``1.0``."""
    number = float(value)
    return str(int(number)) if number.is_integer() else repr(number)


def owning_index(
    element: ET.Element,
    parents: dict[ET.Element, ET.Element],
) -> Optional[int]:
    """Return the stroke index of *element* or of its nearest carrier ancestor."""
    index = stroke_index(element)
    if index is not None:
        return index
    for ancestor in ancestors(element, parents):
        index = stroke_index(ancestor)
        if index is not None:
            return index
    return None

"""Error kinds raised by the glyph pipeline.

The evaluation engine converts all of these into a ``None`` artifact for
the failing node; only direct callers of :class:`GlyphSource` and the
baker see them.
"""

from __future__ import annotations


class StrokeGraphError(Exception):
    """Base class for all StrokeGraph pipeline errors."""


class InvalidInput(StrokeGraphError, ValueError):
    """The requested character is not exactly one Unicode code point."""


class NotFound(StrokeGraphError, LookupError):
    """Neither glyph source tier produced the requested glyph in time."""

    def __init__(self, codepoint: str) -> None:
        super().__init__(f"Glyph not found on any tier: {codepoint}.svg")
        self.codepoint = codepoint


class ParseFailure(StrokeGraphError, ValueError):
    """The vector source is not well-formed XML."""

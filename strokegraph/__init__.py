"""StrokeGraph: stroke-order diagram composition over KanjiVG glyphs."""

__version__ = "0.1.0"

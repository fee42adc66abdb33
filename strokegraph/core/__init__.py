"""Glyph resolution, stroke baking, and the pure SVG operations."""

"""Pydantic v2 graph models and pipeline value types."""

from strokegraph.models.glyph import BakedGlyph, GlyphArtifact, NodeTask
from strokegraph.models.graph import (
    DEFAULT_PORT,
    GraphEdge,
    GraphNode,
    NodeKind,
    StrokeGraph,
)
from strokegraph.models.params import (
    CompositeParams,
    GlyphParams,
    RangeParams,
    TransformParams,
)

__all__ = [
    "DEFAULT_PORT",
    "NodeKind",
    "GraphNode",
    "GraphEdge",
    "StrokeGraph",
    "GlyphArtifact",
    "BakedGlyph",
    "NodeTask",
    "GlyphParams",
    "RangeParams",
    "TransformParams",
    "CompositeParams",
]

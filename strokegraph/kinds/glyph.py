"""Glyph nodes: one character resolved to a prepared, annotated source."""

from __future__ import annotations

from typing import Optional

from strokegraph.kinds.base import BaseNodeEvaluator, EvaluationContext
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import NodeKind
from strokegraph.models.params import GlyphParams


class GlyphEvaluator(BaseNodeEvaluator):
    """Resolve ``char`` → annotate (decorations stripped) → force stroke style.

    An empty ``char`` yields ``None``; anything other than exactly one
    code point raises :class:`~strokegraph.errors.InvalidInput` from the
    glyph source.
    """

    kind = NodeKind.GLYPH
    ports = ()

    async def evaluate(self, task: NodeTask, context: EvaluationContext) -> Optional[str]:
        params = self._params(task, GlyphParams)
        if params is None or not params.char:
            return None
        artifact = await context.source.resolve(params.char)
        return context.ops.prepare_glyph(artifact.svg, context.stroke_color, context.stroke_width)

"""Composite nodes: alpha-blend the artifacts on ports A and B."""

from __future__ import annotations

from typing import Optional

from strokegraph.kinds.base import BaseNodeEvaluator, EvaluationContext
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import NodeKind
from strokegraph.models.params import CompositeParams


class CompositeEvaluator(BaseNodeEvaluator):
    """Blend A and B; a single connected input passes through unchanged."""

    kind = NodeKind.COMPOSITE
    ports = ("A", "B")

    async def evaluate(self, task: NodeTask, context: EvaluationContext) -> Optional[str]:
        a = task.input("A")
        b = task.input("B")
        if not (a and b):
            return a or b or None
        params = self._params(task, CompositeParams)
        if params is None:
            return None
        return context.ops.composite_alpha(a, b, _alpha(params.alpha_a), _alpha(params.alpha_b), params.swap)


def _alpha(value: Optional[float]) -> float:
    return 1.0 if value is None else value

"""Transform nodes: translate-then-scale the upstream artifact."""

from __future__ import annotations

from typing import Optional

from strokegraph.kinds.base import BaseNodeEvaluator, EvaluationContext
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import DEFAULT_PORT, NodeKind
from strokegraph.models.params import TransformParams


class TransformEvaluator(BaseNodeEvaluator):
    """Wrap the upstream artifact in one ``translate(x,y) scale(sx,sy)`` group."""

    kind = NodeKind.TRANSFORM
    ports = (DEFAULT_PORT,)

    async def evaluate(self, task: NodeTask, context: EvaluationContext) -> Optional[str]:
        upstream = task.input(DEFAULT_PORT)
        if not upstream:
            return None
        params = self._params(task, TransformParams)
        if params is None:
            return None
        return context.ops.apply_transform(upstream, params.x, params.y, params.sx, params.sy)

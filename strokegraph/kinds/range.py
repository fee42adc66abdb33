"""Range nodes: restrict the upstream glyph to a stroke interval."""

from __future__ import annotations

from typing import Optional

import structlog

from strokegraph.kinds.base import BaseNodeEvaluator, EvaluationContext
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import DEFAULT_PORT, NodeKind
from strokegraph.models.params import RangeParams

logger = structlog.get_logger(__name__)


def effective_bounds(start: Optional[float], end: Optional[float], count: int) -> tuple[int, int]:
    """Clamp declared bounds into ``[1, count]`` and put them in order.

    Missing (or zero) bounds default to the whole glyph.

    Args:
        start: Declared first stroke.
        end: Declared last stroke.
        count: Strokes in the baked glyph (must be positive).

    Returns:
        ``(low, high)`` with ``1 <= low <= high <= count``.
    """
    s_raw = int(start) if start else 1
    e_raw = int(end) if end else count
    low = min(max(1, min(s_raw, e_raw)), count)
    high = min(max(1, max(s_raw, e_raw)), count)
    return low, high


class RangeEvaluator(BaseNodeEvaluator):
    """Bake the upstream artifact and show strokes ``start..end`` only.

    Missing upstream, or a glyph without stroke carriers, yields ``None``.
    """

    kind = NodeKind.RANGE
    ports = (DEFAULT_PORT,)

    async def evaluate(self, task: NodeTask, context: EvaluationContext) -> Optional[str]:
        upstream = task.input(DEFAULT_PORT)
        if not upstream:
            return None
        params = self._params(task, RangeParams)
        if params is None:
            return None

        baked = context.ops.bake(upstream)
        if baked.count <= 0:
            logger.info("range_unavailable", node_id=task.node_id, reason="no_strokes")
            return None

        low, high = effective_bounds(params.start, params.end, baked.count)
        return context.ops.select_range(baked.svg, low, high, owner=task.node_id)

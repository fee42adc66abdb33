"""Debounced, push-invalidated preview re-evaluation.

The scheduler owns the editable :class:`StrokeGraph`.  Every mutation
marks the changed node and everything downstream of it as dirty and
(re)starts a short debounce timer; when the timer fires, the dirty nodes
that somebody watches are evaluated together in one pass.  Each flush is
a new *generation*: a result is only delivered if no newer generation has
claimed that node in the meantime, so late answers never overwrite fresh
ones.  Stale work is discarded, not aborted.

Mutations must be made from inside the running event loop.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import structlog

from strokegraph.core.operations import count_visible_strokes
from strokegraph.engine.evaluator import EvaluationEngine
from strokegraph.models.graph import DEFAULT_PORT, GraphEdge, GraphNode, StrokeGraph

logger = structlog.get_logger(__name__)

PreviewCallback = Callable[[str, Optional[str], int], None]


class PreviewScheduler:
    """Keep subscribed node previews up to date as the graph is edited.

    Args:
        engine: Evaluation engine used for every flush.
        graph: The graph to edit (a new empty graph if omitted).
        debounce_seconds: Quiet period before re-evaluating.
    """

    def __init__(
        self,
        engine: EvaluationEngine,
        graph: Optional[StrokeGraph] = None,
        *,
        debounce_seconds: float = 0.08,
    ) -> None:
        self.engine = engine
        self.graph = graph if graph is not None else StrokeGraph()
        self.debounce_seconds = debounce_seconds
        self._subscribers: dict[str, list[PreviewCallback]] = {}
        self._dirty: set[str] = set()
        self._claims: dict[str, int] = {}
        self._latest: dict[str, Optional[str]] = {}
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._flushes: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, node_id: str, callback: PreviewCallback) -> Callable[[], None]:
        """Watch *node_id*; *callback* gets ``(node_id, artifact, stroke_count)``.

        The node is scheduled for evaluation right away.

        Returns:
            A callable that removes the subscription.
        """
        self._subscribers.setdefault(node_id, []).append(callback)
        self._dirty.add(node_id)
        self._schedule()

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(node_id, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(node_id, None)

        return unsubscribe

    def latest(self, node_id: str) -> Optional[str]:
        """Return the last delivered artifact for *node_id*."""
        return self._latest.get(node_id)

    @property
    def generation(self) -> int:
        """Number of flushes started so far."""
        return self._generation

    # ------------------------------------------------------------------
    # Graph edits
    # ------------------------------------------------------------------

    def update_node_data(self, node_id: str, **changes: Any) -> None:
        """Change a node's parameters and invalidate it."""
        self.graph.update_data(node_id, **changes)
        self.invalidate(node_id)

    def add_node(self, node: GraphNode) -> None:
        self.graph.add_node(node)
        self.invalidate(node.id)

    def remove_node(self, node_id: str) -> None:
        affected = self.graph.descendants(node_id)
        self.graph.remove_node(node_id)
        self._dirty.update(affected)
        self._schedule()

    def connect(self, edge: GraphEdge) -> None:
        self.graph.connect(edge)
        self.invalidate(edge.target)

    def disconnect(self, target: str, port: str = DEFAULT_PORT) -> None:
        self.graph.disconnect(target, port)
        self.invalidate(target)

    def invalidate(self, node_id: str) -> None:
        """Mark *node_id* and everything downstream of it as dirty."""
        self._dirty.update(self.graph.descendants(node_id))
        self._schedule()

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    async def flush(self) -> dict[str, Optional[str]]:
        """Evaluate the watched dirty nodes now, skipping the debounce.

        Returns:
            The artifacts delivered by this generation.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        targets = sorted(node_id for node_id in self._dirty if node_id in self._subscribers)
        self._dirty.clear()
        if not targets:
            return {}

        self._generation += 1
        generation = self._generation
        for node_id in targets:
            self._claims[node_id] = generation
        logger.debug("preview_flush", generation=generation, targets=targets)

        snapshot = self.graph.model_copy(deep=True)
        results = await self.engine.evaluate_many(snapshot, targets)

        delivered: dict[str, Optional[str]] = {}
        for node_id, artifact in results.items():
            if self._claims.get(node_id) != generation:
                logger.debug("preview_result_discarded", node_id=node_id, generation=generation)
                continue
            self._latest[node_id] = artifact
            delivered[node_id] = artifact
            count = count_visible_strokes(artifact) if artifact else 0
            for callback in list(self._subscribers.get(node_id, ())):
                try:
                    callback(node_id, artifact, count)
                except Exception:
                    logger.exception("preview_callback_failed", node_id=node_id)
        return delivered

    async def wait_idle(self) -> None:
        """Return once no timer is armed and no flush is running."""
        while self._timer is not None or self._flushes:
            if self._flushes:
                await asyncio.gather(*list(self._flushes))
            else:
                await asyncio.sleep(self.debounce_seconds)

    def close(self) -> None:
        """Cancel the armed timer; running flushes finish on their own."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self.flush())
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)

"""Memoized, depth-bounded evaluation of a stroke graph.

A node's artifact is computed after its connected input ports have been
evaluated concurrently.  Within one pass every node is computed at most
once; nodes that sit on a cycle are instead memoized per depth and the
recursion stops at ``max_depth``, so a cyclic graph terminates with
``None`` wherever the cycle is actually needed.
"""

from __future__ import annotations

import asyncio
from typing import Hashable, Iterable, Optional, Protocol

import httpx
import structlog

from strokegraph.engine.executors import InProcessExecutor, IsolatedExecutor
from strokegraph.errors import InvalidInput, ParseFailure
from strokegraph.kinds import NodeEvaluatorFactory, build_factory
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import GraphNode, StrokeGraph

logger = structlog.get_logger(__name__)


class Executor(Protocol):
    async def execute(self, task: NodeTask) -> Optional[str]: ...

    def close(self) -> None: ...


class _Pass:
    """State shared by every node evaluated in one pass."""

    def __init__(self, graph: StrokeGraph) -> None:
        self.graph = graph
        self.nodes: dict[str, GraphNode] = graph.node_index()
        self.cyclic = graph.cyclic_nodes()
        self.memo: dict[Hashable, asyncio.Task] = {}


class EvaluationEngine:
    """Evaluate graph nodes to SVG artifacts.

    Usage::

        engine = EvaluationEngine.from_settings(settings)
        svg = await engine.evaluate(graph, "range-1")

    Args:
        primary: Executor tried first for every node.
        fallback: Executor tried when the primary fails unexpectedly.
        max_depth: Deepest input chain followed before giving up.
        factory: Evaluator registry used to look up each kind's ports.
    """

    def __init__(
        self,
        primary: Executor,
        fallback: Optional[Executor] = None,
        *,
        max_depth: int = 20,
        factory: Optional[NodeEvaluatorFactory] = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.max_depth = max_depth
        self._factory = factory or getattr(primary, "factory", None) or build_factory()

    @classmethod
    def from_settings(
        cls,
        settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> EvaluationEngine:
        """Build the in-process executor and, if enabled, the worker fallback."""
        primary = InProcessExecutor.from_settings(settings, transport=transport)
        fallback = IsolatedExecutor.from_settings(settings) if settings.worker_enabled else None
        return cls(primary, fallback, max_depth=settings.max_depth, factory=primary.factory)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def evaluate(self, graph: StrokeGraph, target: str) -> Optional[str]:
        """Return the artifact of *target*, or ``None`` if unavailable."""
        results = await self.evaluate_many(graph, [target])
        return results[target]

    async def evaluate_many(self, graph: StrokeGraph, targets: Iterable[str]) -> dict[str, Optional[str]]:
        """Evaluate several targets with one shared memo.

        Returns:
            ``{target: artifact_or_None}`` in the order given.
        """
        run = _Pass(graph)
        targets = list(dict.fromkeys(targets))
        results = await asyncio.gather(*(self._visit(run, target, 0) for target in targets))
        logger.debug("graph_evaluated", targets=len(targets), computed=len(run.memo))
        return dict(zip(targets, results))

    def close(self) -> None:
        """Release both executors."""
        self.primary.close()
        if self.fallback is not None:
            self.fallback.close()

    # ------------------------------------------------------------------
    # Recursion
    # ------------------------------------------------------------------

    async def _visit(self, run: _Pass, node_id: str, depth: int) -> Optional[str]:
        if depth > self.max_depth:
            logger.warning("max_depth_exceeded", node_id=node_id, depth=depth)
            return None

        # Waits along a cycle always go one level deeper, so keying cyclic
        # nodes by depth means no task ever awaits itself.
        key: Hashable = (node_id, depth) if node_id in run.cyclic else node_id
        task = run.memo.get(key)
        if task is None:
            task = asyncio.ensure_future(self._compute(run, node_id, depth))
            run.memo[key] = task
        return await task

    async def _compute(self, run: _Pass, node_id: str, depth: int) -> Optional[str]:
        node = run.nodes.get(node_id)
        if node is None:
            logger.warning("unknown_node", node_id=node_id)
            return None
        if self._factory.get(node.kind) is None:
            return None

        ports = self._factory.ports(node.kind)
        wired = [(port, run.graph.input_source(node_id, port)) for port in ports]
        connected = [(port, source) for port, source in wired if source is not None]
        values = await asyncio.gather(*(self._visit(run, source, depth + 1) for _, source in connected))

        inputs: dict[str, Optional[str]] = {port: None for port in ports}
        inputs.update((port, value) for (port, _), value in zip(connected, values))
        task = NodeTask(node_id=node_id, kind=node.kind, data=dict(node.data), inputs=inputs)
        return await self._execute(task)

    async def _execute(self, task: NodeTask) -> Optional[str]:
        try:
            return await self.primary.execute(task)
        except (InvalidInput, ParseFailure) as exc:
            logger.info("node_failed", node_id=task.node_id, kind=task.kind.value, error=str(exc))
            return None
        except Exception as exc:
            logger.warning(
                "node_failed",
                node_id=task.node_id,
                kind=task.kind.value,
                error=str(exc),
                fallback=self.fallback is not None,
            )
            if self.fallback is None:
                return None

        try:
            return await self.fallback.execute(task)
        except Exception as exc:
            logger.warning("fallback_failed", node_id=task.node_id, error=str(exc))
            return None

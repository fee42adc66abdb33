"""Executors that run one :class:`NodeTask` through its kind evaluator.

Both executors share the ``execute(task) -> str | None`` interface and the
same evaluators from :mod:`strokegraph.kinds`:

- :class:`InProcessExecutor` runs on the caller's event loop with the
  engine's own glyph source and operation caches.
- :class:`IsolatedExecutor` ships the task to a long-lived worker process
  and is used as a fallback when the in-process run fails unexpectedly.
"""

from __future__ import annotations

import asyncio
import itertools
import queue
import threading
from typing import Any, Optional

import httpx
import structlog

from strokegraph.core.source import GlyphSource
from strokegraph.engine.cache import CachedOperations
from strokegraph.kinds import EvaluationContext, NodeEvaluatorFactory, build_factory
from strokegraph.models.glyph import NodeTask

logger = structlog.get_logger(__name__)

#: What callers display in place of an unavailable artifact.
PLACEHOLDER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 64" width="64" height="64">'
    '<text x="8" y="36" font-size="12" fill="white" opacity="0.7">N/A</text>'
    "</svg>"
)

# Seconds between liveness checks while the reader thread waits.
_POLL_INTERVAL = 0.5


class InProcessExecutor:
    """Run evaluators directly on the current event loop.

    Args:
        factory: Evaluator registry.
        context: Glyph source, operation caches and styling.
    """

    def __init__(self, factory: NodeEvaluatorFactory, context: EvaluationContext) -> None:
        self.factory = factory
        self.context = context

    @classmethod
    def from_settings(
        cls,
        settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> InProcessExecutor:
        """Build an executor with fresh caches from :class:`Settings`."""
        context = EvaluationContext(
            source=GlyphSource.from_settings(settings, transport=transport),
            ops=CachedOperations(settings.operation_cache_size, settings.bake_cache_size),
            stroke_color=settings.stroke_color,
            stroke_width=settings.stroke_width,
        )
        return cls(build_factory(), context)

    async def execute(self, task: NodeTask) -> Optional[str]:
        """Evaluate *task*; errors propagate to the caller."""
        evaluator = self.factory.get(task.kind)
        if evaluator is None:
            return None
        return await evaluator.evaluate(task, self.context)

    def close(self) -> None:
        """Nothing to release."""


class IsolatedExecutor:
    """Run evaluators in a dedicated worker process.

    The worker is spawned lazily on the first :meth:`execute` and kept for
    the lifetime of the executor.  Each request carries a monotonically
    increasing id that maps to exactly one pending future; a reader thread
    resolves futures on their own loop as responses arrive.  A dead worker
    resolves everything pending to ``None`` and is respawned on the next
    request.

    Args:
        settings_payload: ``Settings.model_dump()`` used to rebuild the
            settings inside the worker.
        start_method: ``multiprocessing`` start method.
        timeout: Seconds to wait for one response.
    """

    def __init__(
        self,
        settings_payload: dict[str, Any],
        *,
        start_method: str = "spawn",
        timeout: float = 15.0,
    ) -> None:
        self._settings_payload = settings_payload
        self._start_method = start_method
        self._timeout = timeout
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[asyncio.AbstractEventLoop, asyncio.Future]] = {}
        self._lock = threading.Lock()
        self._process = None
        self._requests = None
        self._responses = None

    @classmethod
    def from_settings(cls, settings) -> IsolatedExecutor:
        """Build an executor from :class:`Settings`."""
        return cls(
            settings.model_dump(),
            start_method=settings.worker_start_method,
            timeout=settings.worker_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        """Whether a live worker process exists."""
        return self._process is not None and self._process.is_alive()

    @property
    def pending(self) -> int:
        """Number of requests awaiting a response."""
        with self._lock:
            return len(self._pending)

    async def execute(self, task: NodeTask) -> Optional[str]:
        """Send *task* to the worker and await its artifact.

        Returns:
            The artifact, or ``None`` when the worker answered ``None``,
            died, or did not answer within the timeout.
        """
        requests = self._ensure_started()
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        request_id = next(self._ids)
        with self._lock:
            self._pending[request_id] = (loop, future)

        try:
            requests.put((request_id, task))
            return await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("worker_timeout", request_id=request_id, node_id=task.node_id)
            return None
        finally:
            with self._lock:
                self._pending.pop(request_id, None)

    def close(self) -> None:
        """Stop the worker and resolve anything pending to ``None``."""
        process, requests, responses = self._process, self._requests, self._responses
        self._process = self._requests = self._responses = None
        if process is None:
            return
        try:
            requests.put(None)
        except (OSError, ValueError):
            pass
        process.join(timeout=2.0)
        if process.is_alive():
            process.terminate()
            process.join(timeout=2.0)
        self._fail_pending()
        _close_queues(requests, responses)
        logger.info("worker_stopped", pid=process.pid, exitcode=process.exitcode)

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    def _ensure_started(self):
        stale = None
        orphaned: list[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []
        with self._lock:
            if self._process is not None and self._process.is_alive():
                return self._requests
            if self._process is not None:
                # Everything pending was sent to the dead worker.
                stale = (self._process, self._requests, self._responses)
                orphaned = list(self._pending.values())
                self._pending.clear()

            import multiprocessing

            from strokegraph.engine.worker import worker_main

            ctx = multiprocessing.get_context(self._start_method)
            requests = ctx.Queue()
            responses = ctx.Queue()
            process = ctx.Process(
                target=worker_main,
                args=(requests, responses, self._settings_payload),
                name="strokegraph-worker",
                daemon=True,
            )
            process.start()
            self._process, self._requests, self._responses = process, requests, responses

        if stale is not None:
            dead, old_requests, old_responses = stale
            logger.warning("worker_respawned", old_pid=dead.pid, exitcode=dead.exitcode, orphaned=len(orphaned))
            _settle(orphaned, None)
            _close_queues(old_requests, old_responses)

        reader = threading.Thread(
            target=self._read_responses,
            args=(process, responses),
            name="strokegraph-worker-reader",
            daemon=True,
        )
        reader.start()
        logger.info("worker_started", pid=process.pid, start_method=self._start_method)
        return requests

    def _read_responses(self, process, responses) -> None:
        """Resolve pending futures until the worker goes away."""
        while True:
            try:
                message = responses.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if process.is_alive():
                    continue
                logger.warning("worker_exited", pid=process.pid, exitcode=process.exitcode)
                break
            except (EOFError, OSError, ValueError):
                # ValueError: the queue was closed on respawn or close().
                break
            if message is None:
                break
            request_id, result = message
            self._resolve(request_id, result)

        with self._lock:
            if self._process is not process:
                return
            entries = list(self._pending.values())
            self._pending.clear()
        _settle(entries, None)

    def _resolve(self, request_id: int, result: Optional[str]) -> None:
        with self._lock:
            entry = self._pending.pop(request_id, None)
        if entry is None:
            # Timed out already.
            return
        _settle([entry], result)

    def _fail_pending(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        _settle(entries, None)


def _set_result(future: asyncio.Future, result: Optional[str]) -> None:
    if not future.done():
        future.set_result(result)


def _settle(entries, result: Optional[str]) -> None:
    for loop, future in entries:
        try:
            loop.call_soon_threadsafe(_set_result, future, result)
        except RuntimeError:
            # The requesting loop is closed.
            pass


def _close_queues(*queues) -> None:
    for q in queues:
        if q is not None:
            q.close()
            q.cancel_join_thread()

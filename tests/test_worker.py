"""Tests for the isolated worker executor (spawns a real process)."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import EI_CODE, EI_SVG
from strokegraph.config import Settings
from strokegraph.engine.evaluator import EvaluationEngine
from strokegraph.engine.executors import IsolatedExecutor
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import GraphNode, NodeKind, StrokeGraph


@pytest.fixture
def worker_settings(local_root: Path) -> Settings:
    """Remote tier unreachable, 永 available on the local tier."""
    (local_root / f"{EI_CODE}.svg").write_text(EI_SVG, encoding="utf-8")
    return Settings(
        remote_base_url="http://127.0.0.1:9/kanji",
        local_root=str(local_root),
        fetch_timeout_seconds=2.0,
        worker_timeout_seconds=60.0,
        log_level="WARNING",
    )


@pytest.fixture
def isolated(worker_settings: Settings):
    executor = IsolatedExecutor.from_settings(worker_settings)
    yield executor
    executor.close()


def test_worker_evaluates_tasks(isolated: IsolatedExecutor) -> None:
    async def scenario():
        glyph = await isolated.execute(NodeTask("g", NodeKind.GLYPH, {"char": "永"}, {}))
        ranged = await isolated.execute(NodeTask("r", NodeKind.RANGE, {"start": 2, "end": 3}, {"in": glyph}))
        return glyph, ranged

    glyph, ranged = asyncio.run(scenario())

    assert glyph is not None and 'data-stroke="5"' in glyph
    assert ranged is not None and "__baked_strokes__" in ranged
    assert isolated.started
    assert isolated.pending == 0


def test_worker_answers_none_on_failure(isolated: IsolatedExecutor) -> None:
    async def scenario():
        missing = await isolated.execute(NodeTask("g", NodeKind.GLYPH, {"char": "x"}, {}))
        invalid = await isolated.execute(NodeTask("g", NodeKind.GLYPH, {"char": "永永"}, {}))
        return missing, invalid

    assert asyncio.run(scenario()) == (None, None)


def test_concurrent_requests_get_their_own_answers(isolated: IsolatedExecutor) -> None:
    async def scenario():
        tasks = [
            NodeTask(f"t{i}", NodeKind.TRANSFORM, {"x": i}, {"in": "<svg xmlns='http://www.w3.org/2000/svg'/>"})
            for i in range(5)
        ]
        return await asyncio.gather(*(isolated.execute(task) for task in tasks))

    results = asyncio.run(scenario())

    for i, result in enumerate(results):
        assert f"translate({i},0)" in result


def test_close_stops_worker(isolated: IsolatedExecutor) -> None:
    asyncio.run(isolated.execute(NodeTask("c", NodeKind.COMPOSITE, {}, {})))
    assert isolated.started

    isolated.close()

    assert not isolated.started
    assert isolated.pending == 0


class BrokenExecutor:
    async def execute(self, task):
        raise RuntimeError("in-process backend unavailable")

    def close(self) -> None:
        pass


def test_engine_falls_back_to_worker(isolated: IsolatedExecutor) -> None:
    engine = EvaluationEngine(BrokenExecutor(), isolated)
    graph = StrokeGraph(nodes=[GraphNode(id="g", kind=NodeKind.GLYPH, data={"char": "永"})])

    artifact = asyncio.run(engine.evaluate(graph, "g"))

    assert artifact is not None and 'data-stroke="1"' in artifact


def test_respawn_releases_requests_owed_by_dead_worker(isolated: IsolatedExecutor) -> None:
    async def scenario():
        await isolated.execute(NodeTask("c", NodeKind.COMPOSITE, {}, {}))
        dead = isolated._process
        loop = asyncio.get_running_loop()
        owed = loop.create_future()
        with isolated._lock:
            isolated._pending[10_000] = (loop, owed)

        dead.kill()
        dead.join()
        isolated._ensure_started()

        orphaned = await asyncio.wait_for(owed, timeout=5)
        fresh = await isolated.execute(NodeTask("g", NodeKind.GLYPH, {"char": "永"}, {}))
        return dead, orphaned, fresh

    dead, orphaned, fresh = asyncio.run(scenario())

    assert orphaned is None
    assert fresh is not None
    assert isolated._process is not dead
    assert isolated.started

"""Entry point of the isolated worker process.

The worker rebuilds its own settings, glyph source and operation caches,
then serves ``(request_id, NodeTask)`` messages from its request queue
until it receives ``None``.  Every request gets exactly one
``(request_id, artifact)`` reply; failures are logged and answered with
``None``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from strokegraph.config import Settings
from strokegraph.logging import setup_logging

logger = structlog.get_logger(__name__)


def worker_main(requests, responses, settings_payload: dict[str, Any]) -> None:
    """Serve evaluation requests until told to stop.

    Args:
        requests: Queue of ``(request_id, NodeTask)`` tuples or ``None``.
        responses: Queue receiving ``(request_id, artifact)`` tuples.
        settings_payload: Keyword arguments for :class:`Settings`.
    """
    from strokegraph.engine.executors import InProcessExecutor

    settings = Settings(**settings_payload)
    setup_logging(settings.log_level)
    executor = InProcessExecutor.from_settings(settings)
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    logger.info("worker_ready")

    try:
        while True:
            message = requests.get()
            if message is None:
                break
            request_id, task = message
            try:
                result = loop.run_until_complete(executor.execute(task))
            except Exception as exc:
                logger.warning(
                    "worker_task_failed",
                    request_id=request_id,
                    node_id=getattr(task, "node_id", None),
                    error=str(exc),
                )
                result = None
            responses.put((request_id, result))
    finally:
        responses.put(None)
        loop.close()
        logger.info("worker_exiting")

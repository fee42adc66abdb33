"""FastAPI application factory and lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from strokegraph import __version__
from strokegraph.api.routes import router
from strokegraph.config import settings
from strokegraph.engine.evaluator import EvaluationEngine
from strokegraph.logging import setup_logging

logger = structlog.get_logger(__name__)


def create_app(engine: Optional[EvaluationEngine] = None) -> FastAPI:
    """Build and return the configured FastAPI application.

    Args:
        engine: Engine to serve with.  Built from :data:`settings` on
            startup when omitted.

    Returns:
        A fully wired :class:`FastAPI` instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.log_level)
        app.state.engine = engine or EvaluationEngine.from_settings(settings)
        logger.info("strokegraph_started", version=__version__, worker=settings.worker_enabled)
        try:
            yield
        finally:
            app.state.engine.close()
            logger.info("strokegraph_stopped")

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description=(
            "StrokeGraph evaluation engine: resolves KanjiVG glyphs and "
            "evaluates Glyph → Range → Transform → Composite graphs into "
            "stroke-order SVG diagrams."
        ),
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, tags=["Evaluation"])
    return app


app = create_app()

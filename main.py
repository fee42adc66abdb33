"""Entry point for running the StrokeGraph API server via ``python main.py``."""

import os

import uvicorn

from strokegraph.config import settings

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "strokegraph.api.app:app",
        host="0.0.0.0",
        port=port,
        reload=os.environ.get("STROKEGRAPH_RELOAD", "") == "1",
        log_level=settings.log_level.lower(),
    )

"""Application-wide configuration and settings.

Uses ``pydantic-settings`` so values can be overridden via environment
variables prefixed with ``STROKEGRAPH_``.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global settings for the StrokeGraph evaluation engine.

    Attributes:
        app_name: Display name of the application.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        remote_base_url: Primary glyph tier; ``<base>/<codepoint>.svg``.
        local_root: Secondary glyph tier.  Either an ``http(s)://`` base URL
            or a local directory holding ``<codepoint>.svg`` files.
        fetch_timeout_seconds: Upper bound for a single tier attempt.
        stroke_color: Stroke colour enforced on prepared glyphs.
        stroke_width: Stroke width enforced on prepared glyphs.
        max_depth: Recursion bound for graph evaluation.
        glyph_cache_size: Max raw glyph sources kept in memory.
        operation_cache_size: Max entries per operation cache.
        bake_cache_size: Max baked glyphs kept in memory.
        debounce_seconds: Quiet period before a preview re-evaluation.
        worker_enabled: Whether the isolated fallback executor is used.
        worker_start_method: ``multiprocessing`` start method for the worker.
        worker_timeout_seconds: Upper bound for one worker round-trip.
    """

    app_name: str = "StrokeGraph"
    log_level: str = "INFO"

    # Glyph sources
    remote_base_url: str = "https://raw.githubusercontent.com/KanjiVG/kanjivg/master/kanji"
    local_root: str = "kanji"
    fetch_timeout_seconds: float = 6.0

    # Prepared glyph styling
    stroke_color: str = "#fff"
    stroke_width: float = 3

    # Evaluation
    max_depth: int = 20
    glyph_cache_size: int = 512
    operation_cache_size: int = 256
    bake_cache_size: int = 32
    debounce_seconds: float = 0.08

    # Fallback worker
    worker_enabled: bool = True
    worker_start_method: str = "spawn"
    worker_timeout_seconds: float = 15.0

    model_config = {"env_prefix": "STROKEGRAPH_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

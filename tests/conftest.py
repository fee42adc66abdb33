"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import httpx
import pytest

from strokegraph.config import Settings
from strokegraph.core.source import GlyphSource
from strokegraph.engine.evaluator import EvaluationEngine

# KanjiVG-shaped source for 永 (U+6C38): five strokes, one of them nested
# in a component group, plus a stroke-number decoration group.
EI_SVG = """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" xmlns:kvg="http://kanjivg.tagaini.net" width="109" height="109" viewBox="0 0 109 109">
<g id="kvg:StrokePaths_06c38" style="fill:none;stroke:#000000;stroke-width:3;stroke-linecap:round;stroke-linejoin:round;">
<g id="kvg:06c38" kvg:element="永">
\t<path id="kvg:06c38-s1" kvg:type="㇔" d="M49.25,13.5c3.12,1.38,8.06,5.66,9.38,8.12"/>
\t<g id="kvg:06c38-g1">
\t\t<path id="kvg:06c38-s2" kvg:type="㇕" d="M25.25,38.5c1.5,0.38,3.55,0.37,5.25,0.12c4.25-0.62,14.5-3.38,18.5-3.88"/>
\t\t<path id="kvg:06c38-s3" kvg:type="㇚" d="M55.53,27.5c0.58,1.25,0.87,2.98,0.87,5.25c0,10.5,0.1,49.75,0.1,55.5"/>
\t</g>
\t<path id="kvg:06c38-s4" kvg:type="㇒" d="M16.5,71.5c1.64,0.9,4.02,0.56,5.66-0.07c8.09-3.18,20.09-15.68,23.59-21.18"/>
\t<path id="kvg:06c38-s5" kvg:type="㇏" d="M60.25,45c0.75,1.5,5.25,12.25,9.5,18c4.25,5.75,13.5,15.75,25.25,21"/>
</g>
</g>
<g id="kvg:StrokeNumbers_06c38" style="font-size:8;fill:#808080">
\t<text transform="matrix(1 0 0 1 42.50 11.50)">1</text>
\t<text transform="matrix(1 0 0 1 18.50 36.50)">2</text>
\t<text transform="matrix(1 0 0 1 47.50 35.50)">3</text>
\t<text transform="matrix(1 0 0 1 10.50 68.50)">4</text>
\t<text transform="matrix(1 0 0 1 67.50 51.50)">5</text>
</g>
</svg>
"""

EI_CODE = "06c38"


def glyph_transport(files: dict[str, str], log: list[str] | None = None) -> httpx.MockTransport:
    """Serve ``<code>.svg`` bodies from *files*; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if log is not None:
            log.append(str(request.url))
        name = request.url.path.rsplit("/", 1)[-1]
        if name in files:
            return httpx.Response(200, text=files[name])
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture
def ei_svg() -> str:
    """Raw KanjiVG-like source of 永."""
    return EI_SVG


@pytest.fixture
def request_log() -> list[str]:
    """URLs requested through the mock transport."""
    return []


@pytest.fixture
def transport(request_log: list[str]) -> httpx.MockTransport:
    """Remote tier that knows 永 only."""
    return glyph_transport({f"{EI_CODE}.svg": EI_SVG}, request_log)


@pytest.fixture
def local_root(tmp_path: Path) -> Path:
    """An empty local glyph directory."""
    root = tmp_path / "kanji"
    root.mkdir()
    return root


@pytest.fixture
def settings(local_root: Path) -> Settings:
    """Settings pointing at the mock remote tier, with the worker disabled."""
    return Settings(
        remote_base_url="https://glyphs.test/kanji",
        local_root=str(local_root),
        fetch_timeout_seconds=1.0,
        worker_enabled=False,
        debounce_seconds=0.01,
    )


@pytest.fixture
def source(settings: Settings, transport: httpx.MockTransport) -> GlyphSource:
    return GlyphSource.from_settings(settings, transport=transport)


@pytest.fixture
def engine(settings: Settings, transport: httpx.MockTransport) -> Iterator[EvaluationEngine]:
    engine = EvaluationEngine.from_settings(settings, transport=transport)
    yield engine
    engine.close()

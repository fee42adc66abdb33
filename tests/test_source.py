"""Tests for the two-tier glyph source."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from conftest import EI_CODE, EI_SVG, glyph_transport
from strokegraph.core.source import GlyphSource, codepoint_id
from strokegraph.errors import InvalidInput, NotFound


def _source(transport: httpx.MockTransport, local_root, timeout: float = 1.0) -> GlyphSource:
    return GlyphSource("https://glyphs.test/kanji", local_root, timeout=timeout, transport=transport)


def test_codepoint_id_is_five_lowercase_hex_digits() -> None:
    assert codepoint_id("永") == "06c38"
    assert codepoint_id("a") == "00061"
    assert codepoint_id("\U0002000b") == "2000b"


@pytest.mark.parametrize("value", ["", "永永", "ab"])
def test_codepoint_id_rejects_anything_but_one_code_point(value: str) -> None:
    with pytest.raises(InvalidInput):
        codepoint_id(value)


def test_resolve_uses_remote_tier_and_caches(source: GlyphSource, request_log: list[str]) -> None:
    first = asyncio.run(source.resolve("永"))
    second = asyncio.run(source.resolve("永"))

    assert first.tier == "remote"
    assert first.codepoint == EI_CODE
    assert first.svg == EI_SVG
    assert second is first
    assert request_log == [f"https://glyphs.test/kanji/{EI_CODE}.svg"]
    assert source.cached("永") is first


def test_resolve_falls_back_to_local_directory(local_root: Path) -> None:
    (local_root / f"{EI_CODE}.svg").write_text(EI_SVG, encoding="utf-8")
    source = _source(glyph_transport({}), local_root)

    artifact = asyncio.run(source.resolve("永"))

    assert artifact.tier == "local"
    assert artifact.svg == EI_SVG


def test_resolve_falls_back_on_transport_error(local_root: Path) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    (local_root / f"{EI_CODE}.svg").write_text(EI_SVG, encoding="utf-8")
    source = _source(httpx.MockTransport(refuse), local_root)

    assert asyncio.run(source.resolve("永")).tier == "local"


def test_resolve_falls_back_when_remote_times_out(local_root: Path) -> None:
    async def stall(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, text=EI_SVG)

    (local_root / f"{EI_CODE}.svg").write_text(EI_SVG, encoding="utf-8")
    source = _source(httpx.MockTransport(stall), local_root, timeout=0.05)

    assert asyncio.run(source.resolve("永")).tier == "local"


def test_resolve_reads_local_tier_from_a_base_url() -> None:
    log: list[str] = []
    transport = glyph_transport({}, log)
    source = GlyphSource(
        "https://glyphs.test/kanji",
        "https://mirror.test/kanji/",
        timeout=1.0,
        transport=transport,
    )

    with pytest.raises(NotFound):
        asyncio.run(source.resolve("永"))
    assert log == [
        f"https://glyphs.test/kanji/{EI_CODE}.svg",
        f"https://mirror.test/kanji/{EI_CODE}.svg",
    ]


def test_not_found_is_not_cached(local_root: Path) -> None:
    log: list[str] = []
    source = _source(glyph_transport({}, log), local_root)

    with pytest.raises(NotFound) as excinfo:
        asyncio.run(source.resolve("永"))
    assert excinfo.value.codepoint == EI_CODE

    (local_root / f"{EI_CODE}.svg").write_text(EI_SVG, encoding="utf-8")
    assert asyncio.run(source.resolve("永")).tier == "local"
    assert len(log) == 2


def test_invalid_character_makes_no_request(source: GlyphSource, request_log: list[str]) -> None:
    with pytest.raises(InvalidInput):
        asyncio.run(source.resolve("永永"))
    assert request_log == []

"""Two-tier glyph source with in-memory caching.

Resolves one character to its raw KanjiVG SVG.  The primary tier is a
remote host, the secondary a local root (a directory or a base URL);
both are addressed as ``<root>/<codepoint>.svg`` with the codepoint as
five lowercase hex digits.  Each tier attempt is bounded by a timeout
that cancels the in-flight request.
"""

from __future__ import annotations

import asyncio
import pathlib
from typing import Awaitable, Optional

import httpx
import structlog

from strokegraph.engine.cache import LRUCache
from strokegraph.errors import InvalidInput, NotFound
from strokegraph.models.glyph import GlyphArtifact

logger = structlog.get_logger(__name__)


def codepoint_id(char: str) -> str:
    """Return the 5-hex-digit lowercase codepoint id of *char*.

    Args:
        char: A string holding exactly one Unicode code point.

    Returns:
        For example ``"06c38"`` for ``"永"``.

    Raises:
        InvalidInput: If *char* is not exactly one code point.
    """
    if not isinstance(char, str) or len(char) != 1:
        raise InvalidInput(f"Expected exactly one character, got {char!r}")
    return f"{ord(char):05x}"


class GlyphSource:
    """Fetches raw glyph sources with remote → local fallback.

    Successful results are cached per codepoint and shared by every
    caller; failures are not cached, so a later call retries both tiers.

    Usage::

        source = GlyphSource.from_settings(settings)
        artifact = await source.resolve("永")

    Args:
        remote_base_url: Base URL of the primary tier.
        local_root: Secondary tier: an ``http(s)://`` base URL or a
            directory path.
        timeout: Seconds allowed for each tier attempt.
        cache_size: Max number of cached sources.
        transport: Optional ``httpx`` transport (tests inject a
            ``MockTransport``).
    """

    def __init__(
        self,
        remote_base_url: str,
        local_root: str | pathlib.Path,
        *,
        timeout: float = 6.0,
        cache_size: int = 512,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.remote_base_url = remote_base_url.rstrip("/")
        self.local_root = str(local_root)
        self.timeout = timeout
        self._cache: LRUCache[str, GlyphArtifact] = LRUCache(cache_size)
        self._transport = transport

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> GlyphSource:
        """Build a source from :class:`strokegraph.config.Settings`."""
        return cls(
            settings.remote_base_url,
            settings.local_root,
            timeout=settings.fetch_timeout_seconds,
            cache_size=settings.glyph_cache_size,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, char: str) -> GlyphArtifact:
        """Return the raw source for *char*.

        Raises:
            InvalidInput: If *char* is not exactly one code point.
            NotFound: If neither tier produced the glyph in time.
        """
        code = codepoint_id(char)
        cached = self._cache.get(code)
        if cached is not None:
            return cached

        text = await self._attempt("remote", self._fetch_url(f"{self.remote_base_url}/{code}.svg"), code)
        tier = "remote"
        if text is None:
            text = await self._attempt("local", self._fetch_local(code), code)
            tier = "local"
        if text is None:
            logger.warning("glyph_not_found", codepoint=code)
            raise NotFound(code)

        artifact = GlyphArtifact(codepoint=code, char=char, svg=text, tier=tier)
        self._cache.put(code, artifact)
        logger.info("glyph_resolved", codepoint=code, tier=tier, size=len(text))
        return artifact

    def cached(self, char: str) -> Optional[GlyphArtifact]:
        """Return the cached artifact for *char* without fetching."""
        return self._cache.get(codepoint_id(char))

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def _attempt(self, tier: str, fetch: Awaitable[Optional[str]], code: str) -> Optional[str]:
        """Run one tier's *fetch* coroutine under the timeout.

        ``asyncio.wait_for`` cancels the fetch when the timeout expires.
        Network and file errors count as a miss for this tier.
        """
        try:
            return await asyncio.wait_for(fetch, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("glyph_tier_timeout", tier=tier, codepoint=code, timeout=self.timeout)
        except (httpx.HTTPError, OSError, UnicodeDecodeError) as exc:
            logger.warning("glyph_tier_failed", tier=tier, codepoint=code, error=str(exc))
        return None

    async def _fetch_url(self, url: str) -> Optional[str]:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
            headers={"Cache-Control": "no-cache"},
        ) as client:
            response = await client.get(url)
        if response.status_code != 200:
            logger.debug("glyph_tier_status", url=url, status=response.status_code)
            return None
        return response.text

    async def _fetch_local(self, code: str) -> Optional[str]:
        if self.local_root.startswith(("http://", "https://")):
            return await self._fetch_url(f"{self.local_root.rstrip('/')}/{code}.svg")
        path = pathlib.Path(self.local_root) / f"{code}.svg"
        if not path.is_file():
            return None
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

"""Content-fingerprinted memoization of the SVG operations.

Caches are owned objects (one :class:`CachedOperations` per engine) with
a size-capped LRU policy.  Keys are BLAKE2b digests over the operation
name, its parameters and the *full* text of every input, so distinct
inputs never share an entry.  Operations are deterministic, so a key's
value never changes once written and racing writers converge.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, TypeVar

import structlog

from strokegraph.core import baker, operations
from strokegraph.models.glyph import BakedGlyph

logger = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """A small size-capped least-recently-used mapping.

    Args:
        maxsize: Maximum number of entries; the least recently used
            entry is evicted once exceeded.
    """

    def __init__(self, maxsize: int = 256) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be positive, got {maxsize}")
        self.maxsize = maxsize
        self._data: OrderedDict[K, V] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: K) -> Optional[V]:
        """Return the cached value for *key* (refreshing it), or ``None``."""
        try:
            value = self._data[key]
        except KeyError:
            self.misses += 1
            return None
        self._data.move_to_end(key)
        self.hits += 1
        return value

    def put(self, key: K, value: V) -> None:
        """Store *value* under *key*, evicting the oldest entry if full."""
        self._data[key] = value
        self._data.move_to_end(key)
        while len(self._data) > self.maxsize:
            self._data.popitem(last=False)

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value for *key*, computing and storing it on a miss."""
        value = self.get(key)
        if value is None:
            value = compute()
            self.put(key, value)
        return value

    def clear(self) -> None:
        """Drop every entry."""
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


def fingerprint(op: str, *parts: object) -> str:
    """Return a content hash over an operation name and its arguments.

    Text parts are hashed in full; other parts contribute their ``repr``.
    Each part is length-prefixed so concatenation boundaries cannot
    collide.
    """
    digest = hashlib.blake2b(digest_size=20)
    digest.update(op.encode("utf-8"))
    for part in parts:
        data = part.encode("utf-8") if isinstance(part, str) else repr(part).encode("utf-8")
        digest.update(len(data).to_bytes(8, "big"))
        digest.update(data)
    return digest.hexdigest()


class CachedOperations:
    """The operation set wrapped in per-operation fingerprinted caches.

    Range results are partitioned per owning node: when the base glyph
    feeding an owner changes, that owner's partition is cleared so
    repeated range edits on one base cannot grow without bound.

    Args:
        maxsize: Entry cap for each operation cache.
        bake_maxsize: Entry cap for the baked-glyph cache.
    """

    def __init__(self, maxsize: int = 256, bake_maxsize: int = 32) -> None:
        self._maxsize = maxsize
        self._prepared: LRUCache[str, str] = LRUCache(maxsize)
        self._baked: LRUCache[str, BakedGlyph] = LRUCache(bake_maxsize)
        self._transform: LRUCache[str, str] = LRUCache(maxsize)
        self._composite: LRUCache[str, str] = LRUCache(maxsize)
        self._composite_alpha: LRUCache[str, str] = LRUCache(maxsize)
        # owner -> (base fingerprint, results for that base)
        self._range: LRUCache[str, tuple[str, LRUCache[str, str]]] = LRUCache(maxsize)

    # ------------------------------------------------------------------
    # Glyph preparation
    # ------------------------------------------------------------------

    def prepare_glyph(self, raw: str, color: str = "#fff", width: float = 3) -> str:
        """Annotate a raw source (decorations stripped) and enforce stroke style."""
        key = fingerprint("prepare", raw, color, width)
        return self._prepared.get_or_compute(
            key,
            lambda: operations.force_stroke_color(baker.annotate(raw, strip_decorations=True), color, width),
        )

    def bake(self, doc: str) -> BakedGlyph:
        """Cached :func:`strokegraph.core.baker.bake`."""
        return self._baked.get_or_compute(fingerprint("bake", doc), lambda: baker.bake(doc))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def select_range(self, base: str, start: int, end: int, owner: str = "") -> str:
        """Cached :func:`~strokegraph.core.operations.select_range`.

        Args:
            base: Baked document.
            start: First stroke.
            end: Last stroke.
            owner: Id of the node the range belongs to.
        """
        base_key = fingerprint("range-base", base)
        entry = self._range.get(owner)
        if entry is None or entry[0] != base_key:
            if entry is not None:
                logger.debug("range_cache_cleared", owner=owner, entries=len(entry[1]))
            entry = (base_key, LRUCache(self._maxsize))
            self._range.put(owner, entry)
        partition = entry[1]
        key = fingerprint("range", base_key, start, end)
        return partition.get_or_compute(key, lambda: operations.select_range(base, start, end))

    def range_entries(self, owner: str) -> int:
        """Return how many range results are cached for *owner*."""
        entry = self._range.get(owner)
        return len(entry[1]) if entry is not None else 0

    def apply_transform(self, doc: str, tx: float, ty: float, sx: float, sy: float) -> str:
        """Cached :func:`~strokegraph.core.operations.apply_transform`."""
        key = fingerprint("transform", doc, tx, ty, sx, sy)
        return self._transform.get_or_compute(key, lambda: operations.apply_transform(doc, tx, ty, sx, sy))

    def composite(self, doc_a: str, doc_b: str) -> str:
        """Cached :func:`~strokegraph.core.operations.composite`."""
        key = fingerprint("composite", doc_a, doc_b)
        return self._composite.get_or_compute(key, lambda: operations.composite(doc_a, doc_b))

    def composite_alpha(self, doc_a: str, doc_b: str, alpha_a: float, alpha_b: float, swap: bool) -> str:
        """Cached :func:`~strokegraph.core.operations.composite_alpha`."""
        key = fingerprint("composite-alpha", doc_a, doc_b, alpha_a, alpha_b, swap)
        return self._composite_alpha.get_or_compute(
            key, lambda: operations.composite_alpha(doc_a, doc_b, alpha_a, alpha_b, swap)
        )

    def stats(self) -> dict[str, int]:
        """Return entry counts per cache, for diagnostics."""
        return {
            "prepared": len(self._prepared),
            "baked": len(self._baked),
            "range_owners": len(self._range),
            "transform": len(self._transform),
            "composite": len(self._composite),
            "composite_alpha": len(self._composite_alpha),
        }

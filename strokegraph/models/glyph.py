"""Value types produced by the glyph pipeline and passed to executors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from strokegraph.models.graph import NodeKind


@dataclass(frozen=True)
class GlyphArtifact:
    """Raw vector source for one character.

    Attributes:
        codepoint: 5-digit lowercase hex codepoint id (``"06c38"``).
        char: The character itself.
        svg: Source text as fetched.
        tier: Which source tier produced it (``"remote"`` or ``"local"``).
    """

    codepoint: str
    char: str
    svg: str
    tier: str


@dataclass(frozen=True)
class BakedGlyph:
    """A stroke-indexed document with one group per stroke index.

    Attributes:
        svg: Serialized document.
        count: Highest stroke index found (0 when there are no strokes).
    """

    svg: str
    count: int


@dataclass(frozen=True)
class NodeTask:
    """One node's work, ready for an executor.

    Must stay picklable: the isolated executor ships it to a worker
    process.

    Attributes:
        node_id: Id of the node being evaluated.
        kind: Node kind.
        data: Raw node parameters.
        inputs: Upstream artifacts by port name (``None`` when missing).
    """

    node_id: str
    kind: NodeKind
    data: dict[str, Any] = field(default_factory=dict)
    inputs: dict[str, Optional[str]] = field(default_factory=dict)

    def input(self, port: str) -> Optional[str]:
        """Return the artifact on *port*, or ``None``."""
        return self.inputs.get(port)

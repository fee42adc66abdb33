"""Abstract base class for per-kind node evaluators.

Every node kind subclasses :class:`BaseNodeEvaluator`, declares its input
ports and implements :meth:`~BaseNodeEvaluator.evaluate`.  Evaluators are
shared by the in-process and the isolated executor, so the operation set
exists exactly once.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import ClassVar, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from strokegraph.core.source import GlyphSource
from strokegraph.engine.cache import CachedOperations
from strokegraph.models.glyph import NodeTask
from strokegraph.models.graph import NodeKind

logger = structlog.get_logger(__name__)

P = TypeVar("P", bound=BaseModel)


@dataclass
class EvaluationContext:
    """Services an evaluator may use.

    Attributes:
        source: Glyph source for Glyph nodes.
        ops: Cached operation set.
        stroke_color: Colour enforced on prepared glyphs.
        stroke_width: Width enforced on prepared glyphs.
    """

    source: GlyphSource
    ops: CachedOperations
    stroke_color: str = "#fff"
    stroke_width: float = 3


class BaseNodeEvaluator(abc.ABC):
    """Contract that every node kind must fulfil.

    Subclasses set :attr:`kind` and :attr:`ports` and compute the node's
    artifact from a :class:`NodeTask` whose ``inputs`` are already
    evaluated.  Returning ``None`` means "no artifact" (missing input,
    nothing to show); domain errors are raised and handled by the engine.
    """

    kind: ClassVar[NodeKind]
    ports: ClassVar[tuple[str, ...]] = ()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def evaluate(self, task: NodeTask, context: EvaluationContext) -> Optional[str]:
        """Compute the artifact for *task*.

        Args:
            task: The node, its parameters and its upstream artifacts.
            context: Shared services.

        Returns:
            SVG text, or ``None`` when the node has nothing to show.
        """

    # ------------------------------------------------------------------
    # Helpers available to all subclasses
    # ------------------------------------------------------------------

    @staticmethod
    def _params(task: NodeTask, model: Type[P]) -> Optional[P]:
        """Parse ``task.data`` into *model*, or ``None`` if invalid."""
        try:
            return model.model_validate(task.data)
        except ValidationError as exc:
            logger.warning(
                "node_params_invalid",
                node_id=task.node_id,
                kind=task.kind.value,
                errors=exc.error_count(),
            )
            return None

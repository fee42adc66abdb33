"""Factory for obtaining the evaluator of a node kind at runtime.

Adding a new node kind requires only:

1. Creating a new subclass of :class:`BaseNodeEvaluator`.
2. Registering it via :meth:`NodeEvaluatorFactory.register`.
"""

from __future__ import annotations

from typing import Type

import structlog

from strokegraph.kinds.base import BaseNodeEvaluator
from strokegraph.models.graph import NodeKind

logger = structlog.get_logger(__name__)


class NodeEvaluatorFactory:
    """Registry-based factory that maps node kinds to evaluator classes.

    Usage::

        factory = NodeEvaluatorFactory()
        factory.register(NodeKind.RANGE, RangeEvaluator)
        evaluator = factory.get(NodeKind.RANGE)
    """

    def __init__(self) -> None:
        self._registry: dict[NodeKind, Type[BaseNodeEvaluator]] = {}
        self._instances: dict[NodeKind, BaseNodeEvaluator] = {}

    def register(self, kind: NodeKind, evaluator_cls: Type[BaseNodeEvaluator]) -> None:
        """Register an evaluator class for *kind*, replacing any previous one."""
        self._registry[kind] = evaluator_cls
        self._instances.pop(kind, None)
        logger.debug("evaluator_registered", kind=kind.value, cls=evaluator_cls.__name__)

    def get(self, kind: NodeKind) -> BaseNodeEvaluator | None:
        """Return a (cached) evaluator instance for *kind*.

        Returns:
            An evaluator, or ``None`` if nothing is registered for *kind*.
        """
        if kind in self._instances:
            return self._instances[kind]

        cls = self._registry.get(kind)
        if cls is None:
            logger.warning("no_evaluator_registered", kind=getattr(kind, "value", kind))
            return None

        instance = cls()
        self._instances[kind] = instance
        return instance

    def ports(self, kind: NodeKind) -> tuple[str, ...]:
        """Return the input ports declared by the evaluator of *kind*."""
        cls = self._registry.get(kind)
        return cls.ports if cls is not None else ()

    @property
    def supported_kinds(self) -> list[str]:
        """Return a sorted list of registered kind names."""
        return sorted(kind.value for kind in self._registry)


def build_factory() -> NodeEvaluatorFactory:
    """Return a factory with the four built-in node kinds registered."""
    from strokegraph.kinds.composite import CompositeEvaluator
    from strokegraph.kinds.glyph import GlyphEvaluator
    from strokegraph.kinds.range import RangeEvaluator
    from strokegraph.kinds.transform import TransformEvaluator

    factory = NodeEvaluatorFactory()
    for evaluator_cls in (GlyphEvaluator, RangeEvaluator, TransformEvaluator, CompositeEvaluator):
        factory.register(evaluator_cls.kind, evaluator_cls)
    return factory

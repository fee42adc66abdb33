"""Per-kind node evaluators and the evaluator factory."""

from strokegraph.kinds.base import BaseNodeEvaluator, EvaluationContext
from strokegraph.kinds.factory import NodeEvaluatorFactory, build_factory

__all__ = ["BaseNodeEvaluator", "EvaluationContext", "NodeEvaluatorFactory", "build_factory"]

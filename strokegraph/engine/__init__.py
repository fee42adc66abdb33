"""Graph evaluation: operation caches, executors, the evaluator and the preview scheduler."""

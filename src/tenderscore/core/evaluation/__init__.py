"""Evaluation - batch runner and set-based profile evaluation."""

from .batch import BatchRunner, BatchStats, run_batch_evaluation
from .profiles import evaluate_profiles

__all__ = [
    "BatchRunner",
    "BatchStats",
    "run_batch_evaluation",
    "evaluate_profiles",
]

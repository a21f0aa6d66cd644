"""Performance scoring and feedback."""

from ems_trainer.feedback.display import format_feedback
from ems_trainer.feedback.evaluator import (
    assess_timing,
    category_score,
    evaluate,
    performance_level,
)
from ems_trainer.feedback.trace import build_trace

__all__ = [
    "assess_timing",
    "build_trace",
    "category_score",
    "evaluate",
    "format_feedback",
    "performance_level",
]

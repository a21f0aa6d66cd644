"""Structured patient assessment."""

from ems_trainer.assessment.engine import AssessmentEngine
from ems_trainer.assessment.evaluation import evaluate_assessment, timing_score

__all__ = ["AssessmentEngine", "evaluate_assessment", "timing_score"]

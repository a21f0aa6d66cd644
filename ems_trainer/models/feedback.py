"""Performance trace (evaluator input) and FeedbackResult (evaluator output)."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ── Trace ─────────────────────────────────────────────────────────────────────


class ActionRecord(BaseModel):
    action: str
    timestamp: float = Field(..., description="Seconds since encounter start")
    category: str = ""


class RedFlagIdentification(BaseModel):
    flag: str
    time_to_identification: float
    associated_actions: list[str] = Field(default_factory=list)


class InterventionRecord(BaseModel):
    name: str
    timing: float
    sequence: int
    completed_steps: list[str] = Field(default_factory=list)


class PerformanceTrace(BaseModel):
    """Everything the evaluator needs from a finished encounter."""

    scenario_type: str
    actions: list[ActionRecord] = Field(default_factory=list)
    identified_red_flags: list[RedFlagIdentification] = Field(default_factory=list)
    interventions: list[InterventionRecord] = Field(default_factory=list)
    patient_outcome: str = ""


# ── Result ────────────────────────────────────────────────────────────────────


class TimingStatus(str, Enum):
    EXCELLENT = "excellent"
    ACCEPTABLE = "acceptable"
    DELAYED = "delayed"


class ActionTiming(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    actual: float
    target: float
    status: TimingStatus


class RedFlagTiming(BaseModel):
    model_config = ConfigDict(frozen=True)

    flag: str
    time_to_identification: float
    assessment: str  # Prompt / Delayed


class CriticalActionsFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    completed: list[str] = Field(default_factory=list)
    missed: list[str] = Field(default_factory=list)
    timing: list[ActionTiming] = Field(default_factory=list)


class RedFlagFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    identified: list[str] = Field(default_factory=list)
    missed: list[str] = Field(default_factory=list)
    timing: list[RedFlagTiming] = Field(default_factory=list)


class SequencingFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    correct: list[str] = Field(default_factory=list)
    out_of_order: list[str] = Field(default_factory=list)


class CompletionFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    complete: list[str] = Field(default_factory=list)
    incomplete: list[str] = Field(default_factory=list)


class InterventionFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequencing: SequencingFeedback = Field(default_factory=SequencingFeedback)
    completion: CompletionFeedback = Field(default_factory=CompletionFeedback)


class CategoryScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical_actions: float = 0.0
    red_flags: float = 0.0
    interventions: float = 0.0


class FeedbackResult(BaseModel):
    """Produced once per completed encounter. Immutable."""

    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(..., ge=0, le=100)
    performance_level: str
    category_scores: CategoryScores
    critical_actions: CriticalActionsFeedback
    red_flags: RedFlagFeedback
    interventions: InterventionFeedback
    learning_points: tuple[str, ...] = ()
    recommended_review: tuple[str, ...] = ()
    excellent_performance: tuple[str, ...] = ()
    improvement_areas: tuple[str, ...] = ()

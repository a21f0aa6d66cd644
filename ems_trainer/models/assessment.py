"""Structured assessment models - phases, criteria, findings and evaluation."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AssessmentPhase(str, Enum):
    """Assessment phases in their fixed clinical order."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    FOCUSED = "focused"
    ONGOING = "ongoing"

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)

    def next(self) -> Optional["AssessmentPhase"]:
        """Following phase, or None at the last phase."""
        idx = self.rank + 1
        return _PHASE_ORDER[idx] if idx < len(_PHASE_ORDER) else None


_PHASE_ORDER = [
    AssessmentPhase.PRIMARY,
    AssessmentPhase.SECONDARY,
    AssessmentPhase.FOCUSED,
    AssessmentPhase.ONGOING,
]


class AssessmentStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class FindingType(str, Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"
    CRITICAL = "critical"


class AssessmentCriteria(BaseModel):
    id: str
    category: AssessmentPhase
    description: str
    required: bool = True
    time_target: Optional[float] = Field(default=None, description="Target time in seconds")
    order: int = 0
    dependencies: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)


class AssessmentFinding(BaseModel):
    id: str
    type: FindingType
    description: str
    related_criteria: list[str] = Field(default_factory=list)
    requires_intervention: bool = False
    suggested_interventions: list[str] = Field(default_factory=list)
    expected: bool = Field(
        default=False, description="Finding is present in this scenario's patient"
    )


class AssessmentAction(BaseModel):
    id: str
    criteria_id: str
    timestamp: float
    findings: list[str] = Field(default_factory=list)
    notes: str = ""
    duration: float = Field(..., description="Seconds since assessment start")
    interventions_performed: list[str] = Field(default_factory=list)


class Assessment(BaseModel):
    id: str
    learner_id: str
    scenario_id: str
    start_time: float
    current_phase: AssessmentPhase = AssessmentPhase.PRIMARY
    completed_criteria: list[str] = Field(default_factory=list)
    actions: list[AssessmentAction] = Field(default_factory=list)
    status: AssessmentStatus = AssessmentStatus.IN_PROGRESS


class CriticalFindingsSummary(BaseModel):
    identified: int = 0
    missed: int = 0


class AssessmentFeedback(BaseModel):
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class AssessmentEvaluation(BaseModel):
    """Scores are 0-100."""

    completeness: float
    timeliness: float
    accuracy: float
    critical_findings: CriticalFindingsSummary
    intervention_appropriateness: float
    overall_score: int = Field(..., ge=0, le=100)
    feedback: AssessmentFeedback

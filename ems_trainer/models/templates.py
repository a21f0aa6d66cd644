"""Template records - scenario definitions and scoring templates.

Scenario types differ only in data: the same engines and evaluator run
against whichever template is loaded.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ems_trainer.models.assessment import AssessmentCriteria, AssessmentFinding
from ems_trainer.models.encounter import ScenarioContext, Severity
from ems_trainer.models.vitals import PatientState, StateDelta, VitalSigns


# ── Scenario definition ───────────────────────────────────────────────────────


class RedFlagSpec(BaseModel):
    id: str
    category: str
    description: str
    severity: Severity = Severity.HIGH


class ScriptedResponse(BaseModel):
    """Canned patient answer selected by keyword match on the learner's question."""

    keywords: list[str]
    content: str
    delta: Optional[StateDelta] = None
    red_flag_hints: list[str] = Field(default_factory=list)


class InterventionEffect(BaseModel):
    outcome: str
    effectiveness: float = Field(default=0.5, ge=0.0, le=1.0)
    delta: Optional[StateDelta] = None


class ScenarioTemplate(BaseModel):
    id: str
    title: str
    scenario_type: str = Field(..., description="Key of the feedback template used for scoring")
    description: str = ""

    vital_signs: VitalSigns
    patient_state: PatientState = Field(default_factory=PatientState)
    context: ScenarioContext
    red_flags: list[RedFlagSpec] = Field(default_factory=list)

    # Scripted physiology
    responses: list[ScriptedResponse] = Field(default_factory=list)
    default_response: str = "The patient looks at you but doesn't answer."
    tick_delta: Optional[StateDelta] = None
    intervention_effects: dict[str, InterventionEffect] = Field(default_factory=dict)

    # Assessment catalogs
    criteria: list[AssessmentCriteria] = Field(default_factory=list)
    findings: list[AssessmentFinding] = Field(default_factory=list)


# ── Scoring template ──────────────────────────────────────────────────────────


class InterventionPriority(str, Enum):
    IMMEDIATE = "immediate"
    URGENT = "urgent"
    PRIORITY = "priority"
    DELAYED = "delayed"


class CriticalActionSpec(BaseModel):
    action: str
    rationale: str
    time_target: float = Field(..., gt=0, description="Target time in seconds")


class RedFlagRecognitionSpec(BaseModel):
    finding: str
    significance: str
    expected_action: list[str] = Field(default_factory=list)


class InterventionPhaseSpec(BaseModel):
    priority: InterventionPriority
    interventions: list[str]
    rationale: str


class CommonError(BaseModel):
    error: str
    impact: str
    correction: str


class FeedbackTemplate(BaseModel):
    category: str
    critical_actions: list[CriticalActionSpec] = Field(default_factory=list)
    red_flag_recognition: list[RedFlagRecognitionSpec] = Field(default_factory=list)
    intervention_sequence: list[InterventionPhaseSpec] = Field(default_factory=list)
    intervention_steps: dict[str, list[str]] = Field(
        default_factory=dict, description="Expected steps per intervention name"
    )
    common_errors: list[CommonError] = Field(default_factory=list)
    excellent_care_markers: list[str] = Field(default_factory=list)
    learning_points: list[str] = Field(default_factory=list)

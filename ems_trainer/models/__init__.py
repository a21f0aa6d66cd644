"""Data models for encounters, assessments, templates and feedback."""

from ems_trainer.models.assessment import (
    Assessment,
    AssessmentAction,
    AssessmentCriteria,
    AssessmentEvaluation,
    AssessmentFinding,
    AssessmentPhase,
    AssessmentStatus,
    FindingType,
)
from ems_trainer.models.encounter import (
    Encounter,
    EncounterStatus,
    Intervention,
    InterventionType,
    NarrativeEntry,
    RedFlag,
    ScenarioContext,
    Severity,
)
from ems_trainer.models.feedback import (
    ActionRecord,
    FeedbackResult,
    InterventionRecord,
    PerformanceTrace,
    RedFlagIdentification,
    TimingStatus,
)
from ems_trainer.models.templates import (
    CriticalActionSpec,
    FeedbackTemplate,
    InterventionEffect,
    InterventionPhaseSpec,
    InterventionPriority,
    RedFlagRecognitionSpec,
    RedFlagSpec,
    ScenarioTemplate,
    ScriptedResponse,
)
from ems_trainer.models.vitals import (
    BreathingState,
    CirculationState,
    Consciousness,
    GCSPatch,
    GlasgowComaScale,
    PainDescriptor,
    PainPatch,
    PatientState,
    PatientStatePatch,
    StateDelta,
    VitalSigns,
    VitalSignsPatch,
)

__all__ = [
    "ActionRecord",
    "Assessment",
    "AssessmentAction",
    "AssessmentCriteria",
    "AssessmentEvaluation",
    "AssessmentFinding",
    "AssessmentPhase",
    "AssessmentStatus",
    "BreathingState",
    "CirculationState",
    "Consciousness",
    "CriticalActionSpec",
    "Encounter",
    "EncounterStatus",
    "FeedbackResult",
    "FeedbackTemplate",
    "FindingType",
    "GCSPatch",
    "GlasgowComaScale",
    "Intervention",
    "InterventionEffect",
    "InterventionPhaseSpec",
    "InterventionPriority",
    "InterventionRecord",
    "InterventionType",
    "NarrativeEntry",
    "PainDescriptor",
    "PainPatch",
    "PatientState",
    "PatientStatePatch",
    "PerformanceTrace",
    "RedFlag",
    "RedFlagIdentification",
    "RedFlagRecognitionSpec",
    "RedFlagSpec",
    "ScenarioContext",
    "ScenarioTemplate",
    "ScriptedResponse",
    "Severity",
    "StateDelta",
    "TimingStatus",
    "VitalSigns",
    "VitalSignsPatch",
]

"""Encounter - one learner's live attempt at a simulated patient scenario."""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ems_trainer.models.vitals import PatientState, VitalSigns


class EncounterStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class InterventionType(str, Enum):
    ASSESSMENT = "assessment"
    TREATMENT = "treatment"
    MEDICATION = "medication"
    PROCEDURE = "procedure"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ScenarioContext(BaseModel):
    """Scene description captured at start. Never changes afterwards."""

    model_config = ConfigDict(frozen=True)

    location: str
    time_of_day: str
    weather: Optional[str] = None
    bystanders: list[str] = Field(default_factory=list)
    resources_available: list[str] = Field(default_factory=list)
    resource_eta: dict[str, int] = Field(
        default_factory=dict, description="Minutes until each resource arrives"
    )


class Intervention(BaseModel):
    """One performed intervention. Appended once, never edited."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: InterventionType
    name: str
    timestamp: float = Field(..., description="Seconds since encounter start")
    sequence: int = Field(..., ge=0, description="Order performed, 0-based")
    parameters: dict[str, Any] = Field(default_factory=dict)
    completed_steps: list[str] = Field(default_factory=list)
    outcome: str = ""
    effectiveness: float = Field(default=0.0, ge=0.0, le=1.0)


class RedFlag(BaseModel):
    id: str
    category: str
    description: str
    severity: Severity
    identified: bool = False
    time_identified: Optional[float] = Field(
        default=None, description="Seconds since encounter start"
    )


class NarrativeEntry(BaseModel):
    role: str  # learner, patient, system
    content: str
    timestamp: float


class Encounter(BaseModel):
    """Complete encounter state, owned by a single ScenarioEngine."""

    id: str
    learner_id: str
    scenario_id: str
    start_time: float
    current_time: float = 0.0
    status: EncounterStatus = EncounterStatus.IN_PROGRESS

    vital_signs: VitalSigns
    patient_state: PatientState = Field(default_factory=PatientState)
    context: ScenarioContext

    interventions: list[Intervention] = Field(default_factory=list)
    red_flags: list[RedFlag] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    narrative: list[NarrativeEntry] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == EncounterStatus.IN_PROGRESS

    def find_red_flag(self, flag_id: str) -> Optional[RedFlag]:
        return next((rf for rf in self.red_flags if rf.id == flag_id), None)

    def summary_for_prompt(self) -> str:
        """Concise state summary used when prompting the LLM oracle."""
        v = self.vital_signs
        lines = [
            f"Elapsed: {int(self.current_time)}s",
            f"Vitals: HR {v.heart_rate}, BP {v.blood_pressure}, RR {v.respiratory_rate}, "
            f"SpO2 {v.oxygen_saturation}%, Temp {v.temperature}",
        ]
        if v.blood_glucose is not None:
            lines.append(f"Glucose: {v.blood_glucose} mg/dL")
        if v.gcs is not None:
            lines.append(f"GCS: {v.gcs.total} (E{v.gcs.eyes} V{v.gcs.verbal} M{v.gcs.motor})")

        p = self.patient_state
        lines.append(
            f"Patient: {p.consciousness.value}, breathing {p.breathing.value}, "
            f"circulation {p.circulation.value}"
        )
        if p.pain.score:
            lines.append(f"Pain: {p.pain.score}/10 {p.pain.location}".rstrip())

        if self.interventions:
            lines.append("Interventions: " + ", ".join(i.name for i in self.interventions))
        else:
            lines.append("Interventions: none yet")

        return "\n".join(lines)

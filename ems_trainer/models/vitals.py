"""Vital signs and patient state, plus their partial-update patch types.

Patch models track presence through pydantic's ``model_fields_set``: a key
that was supplied (even as ``None``) is applied on merge, an omitted key
leaves the current value untouched.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class Consciousness(str, Enum):
    """AVPU responsiveness scale."""

    ALERT = "alert"
    VERBAL = "verbal"
    PAIN = "pain"
    UNRESPONSIVE = "unresponsive"


class BreathingState(str, Enum):
    NORMAL = "normal"
    LABORED = "labored"
    ABSENT = "absent"


class CirculationState(str, Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"
    ABSENT = "absent"


# ── Vital signs ───────────────────────────────────────────────────────────────


class GlasgowComaScale(BaseModel):
    """GCS components. Defaults describe a fully responsive patient (15)."""

    eyes: int = Field(default=4, ge=1, le=4)
    verbal: int = Field(default=5, ge=1, le=5)
    motor: int = Field(default=6, ge=1, le=6)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.eyes + self.verbal + self.motor


class VitalSigns(BaseModel):
    heart_rate: int
    blood_pressure: str
    respiratory_rate: int
    oxygen_saturation: int
    temperature: float
    blood_glucose: Optional[int] = None
    etco2: Optional[int] = None
    gcs: Optional[GlasgowComaScale] = None

    @property
    def systolic(self) -> Optional[int]:
        """Systolic pressure parsed from the "120/80" string form."""
        head = self.blood_pressure.split("/", 1)[0].strip()
        return int(head) if head.isdigit() else None


class GCSPatch(BaseModel):
    eyes: Optional[int] = Field(default=None, ge=1, le=4)
    verbal: Optional[int] = Field(default=None, ge=1, le=5)
    motor: Optional[int] = Field(default=None, ge=1, le=6)


class VitalSignsPatch(BaseModel):
    """Partial vital-sign update returned by the oracle."""

    heart_rate: Optional[int] = None
    blood_pressure: Optional[str] = None
    respiratory_rate: Optional[int] = None
    oxygen_saturation: Optional[int] = None
    temperature: Optional[float] = None
    blood_glucose: Optional[int] = None
    etco2: Optional[int] = None
    gcs: Optional[GCSPatch] = None


# ── Patient state ─────────────────────────────────────────────────────────────


class PainDescriptor(BaseModel):
    score: int = Field(default=0, ge=0, le=10)
    location: str = ""
    quality: str = ""
    radiation: str = ""
    severity: str = ""
    timing: str = ""


class PatientState(BaseModel):
    consciousness: Consciousness = Consciousness.ALERT
    breathing: BreathingState = BreathingState.NORMAL
    circulation: CirculationState = CirculationState.NORMAL
    disability: str = ""
    exposure: list[str] = Field(default_factory=list)
    pain: PainDescriptor = Field(default_factory=PainDescriptor)


class PainPatch(BaseModel):
    score: Optional[int] = Field(default=None, ge=0, le=10)
    location: Optional[str] = None
    quality: Optional[str] = None
    radiation: Optional[str] = None
    severity: Optional[str] = None
    timing: Optional[str] = None


class PatientStatePatch(BaseModel):
    consciousness: Optional[Consciousness] = None
    breathing: Optional[BreathingState] = None
    circulation: Optional[CirculationState] = None
    disability: Optional[str] = None
    exposure: Optional[list[str]] = None
    pain: Optional[PainPatch] = None


class StateDelta(BaseModel):
    """Partial encounter update. Either side may be absent."""

    vital_signs: Optional[VitalSignsPatch] = None
    patient_state: Optional[PatientStatePatch] = None

    @property
    def is_empty(self) -> bool:
        return self.vital_signs is None and self.patient_state is None

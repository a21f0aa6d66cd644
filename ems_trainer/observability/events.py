"""Structured telemetry events for learner activity tracking."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of telemetry events."""

    ACTIVITY_STARTED = "activity_started"
    ACTIVITY_PROGRESS = "activity_progress"
    ACTIVITY_COMPLETED = "activity_completed"
    ACTIVITY_FAILED = "activity_failed"
    ORACLE_CALL_SUCCESS = "oracle_call_success"
    ORACLE_CALL_ERROR = "oracle_call_error"


class ActivityType(str, Enum):
    SCENARIO = "scenario"
    ASSESSMENT = "assessment"


class TelemetryEvent(BaseModel):
    """Base class for all telemetry events."""

    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None
    duration_ms: Optional[float] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class TrackingEvent(TelemetryEvent):
    """Learner activity start/progress/completion."""

    learner_id: str
    module_id: str
    activity_type: ActivityType
    activity_id: Optional[str] = None
    duration_seconds: float = 0.0
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    score: Optional[float] = None


class OracleCallEvent(TelemetryEvent):
    """Event for a single oracle call."""

    operation: str  # tick, respond, intervene
    encounter_id: str
    oracle: str

    error_type: Optional[str] = None
    error_message: Optional[str] = None

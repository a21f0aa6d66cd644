"""Telemetry for learner activity and oracle calls."""

from ems_trainer.observability.events import (
    ActivityType,
    EventType,
    OracleCallEvent,
    TelemetryEvent,
    TrackingEvent,
)
from ems_trainer.observability.logger import (
    TelemetryLogger,
    TelemetrySink,
    emit_safely,
    get_telemetry_logger,
    oracle_call,
)

__all__ = [
    "ActivityType",
    "EventType",
    "OracleCallEvent",
    "TelemetryEvent",
    "TelemetryLogger",
    "TelemetrySink",
    "TrackingEvent",
    "emit_safely",
    "get_telemetry_logger",
    "oracle_call",
]

"""Telemetry logger writing structured events to JSON Lines files."""

import json
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Protocol

from ems_trainer.observability.events import (
    EventType,
    OracleCallEvent,
    TelemetryEvent,
)

logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """Anything that accepts telemetry events. Failures must not reach callers."""

    def record(self, event: TelemetryEvent) -> None: ...


class TelemetryLogger:
    """Central sink for activity tracking and oracle telemetry.

    Writes structured events to JSON Lines files for later analysis.
    Supports real-time callbacks.
    """

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        enabled: bool = True,
    ):
        """Initialize telemetry logger.

        Args:
            log_dir: Directory for log files (default: data/telemetry)
            enabled: Whether logging is enabled
        """
        self.enabled = enabled

        if log_dir is None:
            log_dir = Path("data/telemetry")
        self.log_dir = log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self._log_files: dict[str, Path] = {
            "activity": self.log_dir / "activity.jsonl",
            "oracle": self.log_dir / "oracle_calls.jsonl",
        }

        self._callbacks: list[Callable[[TelemetryEvent], None]] = []

    def add_callback(self, callback: Callable[[TelemetryEvent], None]) -> None:
        """Add callback for real-time event monitoring."""
        self._callbacks.append(callback)

    def record(self, event: TelemetryEvent) -> None:
        """Record an event. Never raises."""
        log_type = "oracle" if isinstance(event, OracleCallEvent) else "activity"
        self._write_event(event, log_type)

    def _write_event(self, event: TelemetryEvent, log_type: str) -> None:
        if not self.enabled:
            return

        try:
            log_file = self._log_files.get(log_type)
            if log_file:
                with open(log_file, "a") as f:
                    f.write(event.model_dump_json() + "\n")

            for callback in self._callbacks:
                try:
                    callback(event)
                except Exception as e:
                    logger.warning(f"Telemetry callback failed: {e}")

        except Exception as e:
            logger.warning(f"Failed to write telemetry event: {e}")

    def get_recent_events(self, log_type: str, limit: int = 100) -> list[dict[str, Any]]:
        """Read recent events from a log file."""
        log_file = self._log_files.get(log_type)
        if not log_file or not log_file.exists():
            return []

        events = []
        with open(log_file) as f:
            for line in f:
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue

        return events[-limit:]

    def get_stats(self) -> dict[str, Any]:
        """Completion statistics over recorded activity events."""
        events = self.get_recent_events("activity", limit=1000)
        completed = [e for e in events if e.get("event_type") == EventType.ACTIVITY_COMPLETED.value]
        scores = [e["score"] for e in completed if e.get("score") is not None]

        return {
            "total": len(events),
            "started": sum(
                1 for e in events if e.get("event_type") == EventType.ACTIVITY_STARTED.value
            ),
            "completed": len(completed),
            "avg_score": sum(scores) / len(scores) if scores else None,
        }


def emit_safely(sink: Optional[TelemetrySink], event: TelemetryEvent) -> None:
    """Best-effort delivery: a failing sink is logged, never propagated."""
    if sink is None:
        return
    try:
        sink.record(event)
    except Exception as e:
        logger.warning(f"Telemetry sink failed for {event.event_type.value}: {e}")


_default_logger: Optional[TelemetryLogger] = None


def get_telemetry_logger() -> TelemetryLogger:
    """Telemetry logger configured from settings (created on first use)."""
    global _default_logger
    if _default_logger is None:
        from ems_trainer.config import get_settings

        settings = get_settings()
        _default_logger = TelemetryLogger(
            log_dir=settings.telemetry_dir, enabled=settings.telemetry_enabled
        )
    return _default_logger


@contextmanager
def oracle_call(
    sink: Optional[TelemetrySink],
    operation: str,
    encounter_id: str,
    oracle: str,
) -> Iterator[OracleCallEvent]:
    """Context manager timing one oracle call.

    Usage:
        with oracle_call(sink, "respond", encounter.id, "ScriptedOracle"):
            reply = await oracle.respond(state, question)
    """
    start_time = time.time()
    event = OracleCallEvent(
        event_type=EventType.ORACLE_CALL_SUCCESS,
        operation=operation,
        encounter_id=encounter_id,
        oracle=oracle,
    )

    try:
        yield event

    except Exception as e:
        event.event_type = EventType.ORACLE_CALL_ERROR
        event.error_type = type(e).__name__
        event.error_message = str(e)[:200]
        raise

    finally:
        event.duration_ms = (time.time() - start_time) * 1000
        emit_safely(sink, event)

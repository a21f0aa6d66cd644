"""Per-learner session - one encounter and one assessment, wired to scoring and telemetry."""

import logging
import time
from typing import Callable, Optional

from pydantic import BaseModel

from ems_trainer.assessment.engine import AssessmentEngine
from ems_trainer.config import Settings, get_settings
from ems_trainer.errors import NoActiveEncounter
from ems_trainer.feedback.evaluator import evaluate
from ems_trainer.feedback.trace import build_trace
from ems_trainer.models.assessment import Assessment, AssessmentEvaluation
from ems_trainer.models.encounter import Encounter
from ems_trainer.models.feedback import FeedbackResult, PerformanceTrace
from ems_trainer.models.templates import FeedbackTemplate
from ems_trainer.observability import (
    ActivityType,
    EventType,
    TelemetrySink,
    TrackingEvent,
    emit_safely,
)
from ems_trainer.oracle.base import BaseOracle
from ems_trainer.scenario.engine import ScenarioEngine
from ems_trainer.templates.store import TemplateStore

logger = logging.getLogger(__name__)


class ScenarioOutcome(BaseModel):
    """Final encounter state together with its score."""

    encounter: Encounter
    trace: PerformanceTrace
    feedback: FeedbackResult


class LearnerSession:
    """Explicit session object owning at most one active Encounter and one active Assessment.

    Completion runs the evaluator and records exactly one tracking event.
    Telemetry is best-effort: a failing sink never fails completion.
    """

    def __init__(
        self,
        learner_id: str,
        templates: TemplateStore,
        oracle: BaseOracle,
        telemetry: Optional[TelemetrySink] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.learner_id = learner_id
        self.templates = templates
        self.telemetry = telemetry
        self.settings = settings or get_settings()

        self.scenario = ScenarioEngine(
            templates,
            oracle,
            telemetry=telemetry,
            refresh_interval=self.settings.vitals_refresh_interval,
            clock=clock,
        )
        self.assessment = AssessmentEngine(templates, clock=clock)
        self._clock = clock

    # ── Scenario ──────────────────────────────────────────────────────────────

    async def start_scenario(self, scenario_id: str) -> Encounter:
        encounter = await self.scenario.start(self.learner_id, scenario_id)
        self._track(
            EventType.ACTIVITY_STARTED,
            ActivityType.SCENARIO,
            module_id=scenario_id,
            activity_id=encounter.id,
        )
        return encounter

    async def complete_scenario(self) -> ScenarioOutcome:
        """Complete the encounter, score it and record the completion.

        The scoring template is resolved first, so a missing template leaves
        the encounter in progress.
        """
        scoring = self._scoring_template()
        encounter = await self.scenario.complete()
        return self._score(encounter, scoring, EventType.ACTIVITY_COMPLETED)

    async def fail_scenario(self, reason: str) -> ScenarioOutcome:
        scoring = self._scoring_template()
        encounter = await self.scenario.fail(reason)
        return self._score(encounter, scoring, EventType.ACTIVITY_FAILED)

    def _scoring_template(self) -> Optional[tuple[str, FeedbackTemplate]]:
        snapshot = self.scenario.snapshot()
        if snapshot is None:
            return None
        scenario = self.templates.get_scenario(snapshot.scenario_id)
        return scenario.scenario_type, self.templates.get_feedback_template(scenario.scenario_type)

    def _score(
        self,
        encounter: Encounter,
        scoring: tuple[str, FeedbackTemplate],
        event_type: EventType,
    ) -> ScenarioOutcome:
        scenario_type, template = scoring
        trace = build_trace(encounter, scenario_type)
        feedback = evaluate(trace, template, self.settings)

        self._track(
            event_type,
            ActivityType.SCENARIO,
            module_id=encounter.scenario_id,
            activity_id=encounter.id,
            duration_seconds=encounter.current_time,
            progress=100.0,
            score=feedback.overall_score,
            metadata={
                "performance_level": feedback.performance_level,
                "interventions": len(encounter.interventions),
                "red_flags_identified": len(feedback.red_flags.identified),
            },
        )
        logger.info(
            f"Scenario {encounter.scenario_id} scored {feedback.overall_score} "
            f"({feedback.performance_level}) for {self.learner_id}"
        )
        return ScenarioOutcome(encounter=encounter, trace=trace, feedback=feedback)

    # ── Assessment ────────────────────────────────────────────────────────────

    def start_assessment(self, scenario_id: Optional[str] = None) -> Assessment:
        """Start an assessment, defaulting to the scenario currently running."""
        if scenario_id is None:
            snapshot = self.scenario.snapshot()
            if snapshot is None:
                raise NoActiveEncounter("No scenario running - pass a scenario id")
            scenario_id = snapshot.scenario_id

        assessment = self.assessment.start(self.learner_id, scenario_id)
        self._track(
            EventType.ACTIVITY_STARTED,
            ActivityType.ASSESSMENT,
            module_id=scenario_id,
            activity_id=assessment.id,
        )
        return assessment

    def complete_assessment(self) -> AssessmentEvaluation:
        evaluation = self.assessment.complete()
        assessment = self.assessment.snapshot()
        self._track(
            EventType.ACTIVITY_COMPLETED,
            ActivityType.ASSESSMENT,
            module_id=assessment.scenario_id,
            activity_id=assessment.id,
            duration_seconds=max(0.0, self._clock() - assessment.start_time),
            progress=100.0,
            score=evaluation.overall_score,
            metadata={
                "completeness": evaluation.completeness,
                "timeliness": evaluation.timeliness,
                "accuracy": evaluation.accuracy,
            },
        )
        return evaluation

    async def cleanup(self) -> None:
        await self.scenario.cleanup()

    def _track(self, event_type: EventType, activity_type: ActivityType, **fields) -> None:
        emit_safely(
            self.telemetry,
            TrackingEvent(
                event_type=event_type,
                learner_id=self.learner_id,
                activity_type=activity_type,
                **fields,
            ),
        )

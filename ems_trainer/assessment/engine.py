"""Assessment state machine - phase-gated criteria with dependencies."""

import logging
import time
import uuid
from typing import Callable, Optional

from ems_trainer.assessment.evaluation import evaluate_assessment
from ems_trainer.errors import InvalidCriteria, InvalidState, NoActiveAssessment
from ems_trainer.models.assessment import (
    Assessment,
    AssessmentAction,
    AssessmentCriteria,
    AssessmentEvaluation,
    AssessmentFinding,
    AssessmentPhase,
    AssessmentStatus,
)
from ems_trainer.templates.store import TemplateStore

logger = logging.getLogger(__name__)


class AssessmentEngine:
    """Drives one structured assessment through primary -> secondary -> focused -> ongoing.

    A criterion is available when it belongs to the current phase, is not
    completed, and all of its dependencies are completed. The phase only
    moves forward, once every required criterion of the current phase is done.
    """

    def __init__(self, templates: TemplateStore, clock: Callable[[], float] = time.monotonic):
        self.templates = templates
        self._clock = clock
        self._assessment: Optional[Assessment] = None
        self._criteria: dict[str, AssessmentCriteria] = {}
        self._findings: dict[str, AssessmentFinding] = {}

    @property
    def phase(self) -> Optional[AssessmentPhase]:
        return self._assessment.current_phase if self._assessment else None

    def snapshot(self) -> Optional[Assessment]:
        return self._assessment.model_copy(deep=True) if self._assessment else None

    def start(self, learner_id: str, scenario_id: str) -> Assessment:
        """Begin an assessment in the primary phase.

        Raises:
            InvalidState: If an assessment is already in progress
            TemplateNotFound: If the scenario id is unknown
        """
        if self._assessment is not None and self._assessment.status == AssessmentStatus.IN_PROGRESS:
            raise InvalidState("An assessment is already in progress - complete it first")

        criteria = self.templates.get_assessment_criteria(scenario_id)
        findings = self.templates.get_findings(scenario_id)

        self._criteria = {c.id: c for c in criteria}
        self._findings = {f.id: f for f in findings}
        self._assessment = Assessment(
            id=f"asm-{uuid.uuid4().hex[:12]}",
            learner_id=learner_id,
            scenario_id=scenario_id,
            start_time=self._clock(),
        )
        self._skip_empty_phases()

        logger.info(
            f"Started assessment {self._assessment.id} for {learner_id} "
            f"({len(criteria)} criteria, {len(findings)} findings)"
        )
        return self.snapshot()

    # ── Queries ───────────────────────────────────────────────────────────────

    def current_criteria(self) -> list[AssessmentCriteria]:
        """All criteria of the current phase, by order then id."""
        if self._assessment is None:
            return []
        phase = self._assessment.current_phase
        return sorted(
            (c for c in self._criteria.values() if c.category == phase),
            key=lambda c: (c.order, c.id),
        )

    def available_criteria(self) -> list[AssessmentCriteria]:
        if self._assessment is None or self._assessment.status != AssessmentStatus.IN_PROGRESS:
            return []
        done = set(self._assessment.completed_criteria)
        return [
            c
            for c in self.current_criteria()
            if c.id not in done and all(dep in done for dep in c.dependencies)
        ]

    def relevant_findings(self, criteria_id: str) -> list[AssessmentFinding]:
        return [f for f in self._findings.values() if criteria_id in f.related_criteria]

    # ── Mutations ─────────────────────────────────────────────────────────────

    def perform(
        self,
        criteria_id: str,
        finding_ids: Optional[list[str]] = None,
        notes: str = "",
    ) -> AssessmentAction:
        """Record an assessment step with the findings the learner selected.

        Raises:
            NoActiveAssessment: If no assessment is in progress
            InvalidCriteria: If the criterion is unknown, done, out of phase or blocked
        """
        assessment = self._require_active()
        criterion = self._criteria.get(criteria_id)
        if criterion is None:
            raise InvalidCriteria(criteria_id, "unknown assessment step")

        done = set(assessment.completed_criteria)
        if criteria_id in done:
            raise InvalidCriteria(criteria_id, "already completed")
        if criterion.category != assessment.current_phase:
            raise InvalidCriteria(
                criteria_id,
                f"belongs to the {criterion.category.value} phase, "
                f"current phase is {assessment.current_phase.value}",
            )

        missing = [dep for dep in criterion.dependencies if dep not in done]
        if missing:
            names = ", ".join(
                self._criteria[dep].description if dep in self._criteria else dep
                for dep in missing
            )
            raise InvalidCriteria(criteria_id, f"complete {names} first", missing)

        now = self._clock()
        action = AssessmentAction(
            id=f"act-{uuid.uuid4().hex[:12]}",
            criteria_id=criteria_id,
            timestamp=now,
            findings=list(finding_ids or []),
            notes=notes,
            duration=max(0.0, now - assessment.start_time),
        )
        assessment.actions.append(action)
        assessment.completed_criteria.append(criteria_id)
        logger.debug(f"Performed {criteria_id} at {action.duration:.0f}s")

        self._advance_phase()
        return action.model_copy(deep=True)

    def attach_intervention(self, action_id: str, intervention: str) -> AssessmentAction:
        """Record an intervention performed in response to an assessment action."""
        assessment = self._require_active()
        action = next((a for a in assessment.actions if a.id == action_id), None)
        if action is None:
            raise InvalidCriteria(action_id, "unknown assessment action")

        action.interventions_performed.append(intervention)
        return action.model_copy(deep=True)

    def complete(self) -> AssessmentEvaluation:
        """Finalize the assessment and score it.

        Raises:
            NoActiveAssessment: If not started or already completed
        """
        assessment = self._require_active()
        assessment.status = AssessmentStatus.COMPLETED

        evaluation = evaluate_assessment(
            assessment, self._criteria.values(), self._findings.values()
        )
        logger.info(
            f"Assessment {assessment.id} completed: overall {evaluation.overall_score} "
            f"(completeness {evaluation.completeness:.0f}, accuracy {evaluation.accuracy:.0f})"
        )
        return evaluation

    # ── Internals ─────────────────────────────────────────────────────────────

    def _require_active(self) -> Assessment:
        assessment = self._assessment
        if assessment is None or assessment.status != AssessmentStatus.IN_PROGRESS:
            raise NoActiveAssessment()
        return assessment

    def _advance_phase(self) -> None:
        """Move one phase forward once the current phase has no outstanding required criteria."""
        assessment = self._assessment
        done = set(assessment.completed_criteria)
        phase = assessment.current_phase

        outstanding = [
            c
            for c in self._criteria.values()
            if c.category == phase and c.required and c.id not in done
        ]
        if outstanding or phase.next() is None:
            return

        self._enter_phase(phase.next())
        self._skip_empty_phases()

    def _skip_empty_phases(self) -> None:
        """Pass over phases that have no criteria at all."""
        assessment = self._assessment
        while assessment.current_phase.next() is not None and not any(
            c.category == assessment.current_phase for c in self._criteria.values()
        ):
            self._enter_phase(assessment.current_phase.next())

    def _enter_phase(self, phase: AssessmentPhase) -> None:
        self._assessment.current_phase = phase
        logger.info(f"Assessment {self._assessment.id} advanced to {phase.value} phase")

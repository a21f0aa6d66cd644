"""Scenario state machine - one live patient encounter with a background vitals refresh."""

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel, Field

from ems_trainer.config import get_settings
from ems_trainer.errors import (
    AlreadyCompleted,
    InvalidState,
    NoActiveEncounter,
    OracleUnavailable,
)
from ems_trainer.models.encounter import (
    Encounter,
    EncounterStatus,
    Intervention,
    InterventionType,
    NarrativeEntry,
    RedFlag,
)
from ems_trainer.observability import TelemetrySink, oracle_call
from ems_trainer.oracle.base import BaseOracle, InterventionRequest
from ems_trainer.scenario.merge import apply_delta
from ems_trainer.templates.store import TemplateStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class InteractionResult(BaseModel):
    """Patient answer to a learner question plus the resulting state."""

    content: str
    red_flag_hints: list[str] = Field(default_factory=list)
    encounter: Encounter


class ScenarioEngine:
    """Owns a single Encounter from start to completion.

    User operations and the periodic refresh serialize on one lock around
    snapshot -> oracle -> merge. Whenever the oracle returns, the encounter
    status is checked again; a reply that arrives after completion is
    dropped without merging.
    """

    def __init__(
        self,
        templates: TemplateStore,
        oracle: BaseOracle,
        telemetry: Optional[TelemetrySink] = None,
        refresh_interval: Optional[float] = None,
        clock: Clock = time.monotonic,
    ):
        """Initialize the engine.

        Args:
            templates: Source of scenario definitions
            oracle: Patient physiology / interaction model
            telemetry: Optional sink for oracle call events
            refresh_interval: Wall-clock seconds between vitals refreshes (default from settings)
            clock: Time source for encounter timestamps. The refresh loop does not
                follow it, so a simulated clock never triggers a refresh.
        """
        self.templates = templates
        self.oracle = oracle
        self.telemetry = telemetry
        self.refresh_interval = refresh_interval or get_settings().vitals_refresh_interval
        self._clock = clock

        self._encounter: Optional[Encounter] = None
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._refresh_task: Optional[asyncio.Task] = None
        self.tick_count = 0

    @property
    def oracle_name(self) -> str:
        return type(self.oracle).__name__

    @property
    def status(self) -> Optional[EncounterStatus]:
        return self._encounter.status if self._encounter else None

    def snapshot(self) -> Optional[Encounter]:
        """Deep copy of the current encounter, or None before start."""
        return self._encounter.model_copy(deep=True) if self._encounter else None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self, learner_id: str, scenario_id: str) -> Encounter:
        """Build the encounter from its template and begin the refresh loop.

        Raises:
            InvalidState: If a scenario is already in progress
            TemplateNotFound: If the scenario id is unknown
        """
        if self._encounter is not None and self._encounter.is_active:
            raise InvalidState("A scenario is already in progress - complete it first")

        template = self.templates.get_scenario(scenario_id)

        encounter = Encounter(
            id=f"enc-{uuid.uuid4().hex[:12]}",
            learner_id=learner_id,
            scenario_id=scenario_id,
            start_time=self._clock(),
            vital_signs=template.vital_signs.model_copy(deep=True),
            patient_state=template.patient_state.model_copy(deep=True),
            context=template.context,
            red_flags=[
                RedFlag(
                    id=spec.id,
                    category=spec.category,
                    description=spec.description,
                    severity=spec.severity,
                )
                for spec in template.red_flags
            ],
        )
        if template.description:
            encounter.narrative.append(
                NarrativeEntry(role="system", content=template.description, timestamp=0.0)
            )

        self._encounter = encounter
        self.tick_count = 0
        self._stop = asyncio.Event()
        self._refresh_task = asyncio.create_task(
            self._refresh_loop(), name=f"vitals-refresh-{encounter.id}"
        )

        logger.info(f"Started scenario {scenario_id} for {learner_id} ({encounter.id})")
        return self.snapshot()

    async def complete(self) -> Encounter:
        """Finish the encounter and stop the refresh loop.

        Raises:
            NoActiveEncounter: If no scenario was started
            AlreadyCompleted: If the encounter already finished
        """
        return await self._finish(EncounterStatus.COMPLETED)

    async def fail(self, reason: str) -> Encounter:
        """End the encounter as failed (deterioration or abandonment)."""
        return await self._finish(EncounterStatus.FAILED, reason)

    async def _finish(self, status: EncounterStatus, reason: Optional[str] = None) -> Encounter:
        self._require_unfinished()
        self._stop.set()

        async with self._lock:
            encounter = self._require_unfinished()
            encounter.current_time = self._elapsed(encounter)
            if reason:
                encounter.narrative.append(
                    NarrativeEntry(role="system", content=reason, timestamp=encounter.current_time)
                )
            encounter.status = status

        task, self._refresh_task = self._refresh_task, None
        if task is not None and task is not asyncio.current_task():
            await task

        logger.info(
            f"Scenario {encounter.scenario_id} {status.value} after "
            f"{encounter.current_time:.0f}s ({len(encounter.interventions)} interventions)"
        )
        return self.snapshot()

    async def cleanup(self) -> None:
        """Cancel the refresh loop unconditionally and drop the encounter."""
        self._stop.set()
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._encounter = None

    # ── Learner operations ────────────────────────────────────────────────────

    async def ask(self, question: str) -> InteractionResult:
        """Ask the patient a question and merge whatever the answer changes."""
        self._require_active()

        async with self._lock:
            encounter = self._require_active()
            asked_at = self._elapsed(encounter)
            reply = await self._call_oracle(
                "respond", encounter, lambda state: self.oracle.respond(state, question)
            )

            encounter = self._require_active()
            encounter.current_time = self._elapsed(encounter)
            encounter.narrative.append(
                NarrativeEntry(role="learner", content=question, timestamp=asked_at)
            )
            encounter.narrative.append(
                NarrativeEntry(role="patient", content=reply.content, timestamp=encounter.current_time)
            )
            apply_delta(encounter, reply.delta)

        return InteractionResult(
            content=reply.content,
            red_flag_hints=reply.red_flag_hints,
            encounter=self.snapshot(),
        )

    async def intervene(
        self,
        type: InterventionType,
        name: str,
        parameters: Optional[dict[str, Any]] = None,
        completed_steps: Optional[list[str]] = None,
    ) -> Intervention:
        """Perform an intervention and record its outcome."""
        self._require_active()
        request = InterventionRequest(
            type=InterventionType(type), name=name, parameters=parameters or {}
        )

        async with self._lock:
            encounter = self._require_active()
            performed_at = self._elapsed(encounter)
            outcome = await self._call_oracle(
                "intervene", encounter, lambda state: self.oracle.intervene(state, request)
            )

            encounter = self._require_active()
            encounter.current_time = self._elapsed(encounter)
            intervention = Intervention(
                id=f"int-{uuid.uuid4().hex[:12]}",
                type=request.type,
                name=name,
                timestamp=performed_at,
                sequence=len(encounter.interventions),
                parameters=request.parameters,
                completed_steps=list(completed_steps or []),
                outcome=outcome.outcome,
                effectiveness=outcome.effectiveness,
            )
            encounter.interventions.append(intervention)
            encounter.narrative.append(
                NarrativeEntry(
                    role="system",
                    content=f"{name}: {outcome.outcome}",
                    timestamp=encounter.current_time,
                )
            )
            if outcome.delta is not None:
                apply_delta(encounter, outcome.delta)

        logger.debug(f"Intervention #{intervention.sequence} {name} at {performed_at:.0f}s")
        return intervention

    def identify_red_flag(self, flag_id: str) -> Encounter:
        """Mark a red flag identified. Unknown or already identified flags are a no-op."""
        encounter = self._require_active()
        flag = encounter.find_red_flag(flag_id)

        if flag is None:
            logger.debug(f"Unknown red flag {flag_id} in {encounter.id}")
        elif not flag.identified:
            elapsed = self._elapsed(encounter)
            encounter.current_time = elapsed
            flag.identified = True
            flag.time_identified = elapsed
            logger.info(f"Red flag {flag_id} identified at {elapsed:.0f}s")

        return self.snapshot()

    def add_note(self, text: str) -> Encounter:
        encounter = self._require_active()
        encounter.notes.append(text)
        return self.snapshot()

    # ── Internals ─────────────────────────────────────────────────────────────

    def _require_active(self) -> Encounter:
        encounter = self._encounter
        if encounter is None or not encounter.is_active:
            raise NoActiveEncounter()
        return encounter

    def _require_unfinished(self) -> Encounter:
        encounter = self._encounter
        if encounter is None:
            raise NoActiveEncounter()
        if not encounter.is_active:
            raise AlreadyCompleted(f"Scenario already {encounter.status.value}")
        return encounter

    def _elapsed(self, encounter: Encounter) -> float:
        return max(0.0, self._clock() - encounter.start_time)

    async def _call_oracle(
        self,
        operation: str,
        encounter: Encounter,
        call: Callable[[Encounter], Awaitable[T]],
    ) -> T:
        """Run one oracle call against a snapshot. Any failure surfaces as OracleUnavailable."""
        state = encounter.model_copy(deep=True)
        state.current_time = self._elapsed(encounter)

        with oracle_call(self.telemetry, operation, encounter.id, self.oracle_name):
            try:
                return await call(state)
            except OracleUnavailable:
                raise
            except Exception as e:
                logger.error(f"Oracle {operation} failed for {encounter.id}: {e}")
                raise OracleUnavailable(f"Patient simulation failed: {e}") from e

    async def _refresh_loop(self) -> None:
        stop = self._stop
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.refresh_interval)
            except asyncio.TimeoutError:
                await self._tick(stop)

    async def _tick(self, stop: asyncio.Event) -> None:
        async with self._lock:
            encounter = self._encounter
            if stop.is_set() or encounter is None or not encounter.is_active:
                return

            try:
                delta = await self._call_oracle("tick", encounter, self.oracle.tick)
            except OracleUnavailable as e:
                logger.warning(f"Vitals refresh skipped for {encounter.id}: {e}")
                return

            if not encounter.is_active or self._encounter is not encounter:
                return
            encounter.current_time = self._elapsed(encounter)
            apply_delta(encounter, delta)
            self.tick_count += 1

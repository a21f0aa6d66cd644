"""Tests for the scenario state machine."""

import asyncio

import pytest

from ems_trainer.errors import (
    AlreadyCompleted,
    InvalidState,
    NoActiveEncounter,
    OracleUnavailable,
    TemplateNotFound,
)
from ems_trainer.models import (
    EncounterStatus,
    InterventionType,
    StateDelta,
    VitalSignsPatch,
)
from ems_trainer.observability import EventType
from ems_trainer.oracle import InterventionOutcome, OracleReply
from ems_trainer.scenario import ScenarioEngine


@pytest.fixture
def engine(store, scripted_oracle, clock):
    """Engine over the built-in library with ticks effectively disabled."""
    return ScenarioEngine(store, scripted_oracle, refresh_interval=3600, clock=clock)


@pytest.fixture
def mock_engine(store, mock_oracle, clock, sink):
    return ScenarioEngine(store, mock_oracle, telemetry=sink, refresh_interval=3600, clock=clock)


class TestStart:
    """Tests for starting an encounter."""

    @pytest.mark.asyncio
    async def test_start_builds_encounter_from_template(self, engine):
        encounter = await engine.start("learner-1", "chest_pain_01")
        try:
            assert encounter.status == EncounterStatus.IN_PROGRESS
            assert encounter.learner_id == "learner-1"
            assert encounter.vital_signs.heart_rate == 104
            assert encounter.context.location.startswith("Single-family home")
            assert {rf.id for rf in encounter.red_flags} == {
                "rf_crushing_pain",
                "rf_diaphoresis",
                "rf_hypotension",
            }
            assert all(not rf.identified for rf in encounter.red_flags)
            assert encounter.interventions == []
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_unknown_scenario_raises(self, engine):
        with pytest.raises(TemplateNotFound):
            await engine.start("learner-1", "does_not_exist")
        assert engine.snapshot() is None

    @pytest.mark.asyncio
    async def test_start_twice_raises(self, engine):
        await engine.start("learner-1", "chest_pain_01")
        try:
            with pytest.raises(InvalidState):
                await engine.start("learner-1", "chest_pain_01")
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_operations_before_start_raise(self, engine):
        with pytest.raises(NoActiveEncounter):
            await engine.ask("Where does it hurt?")
        with pytest.raises(NoActiveEncounter):
            engine.add_note("note")
        with pytest.raises(NoActiveEncounter):
            await engine.complete()


class TestInteraction:
    """Tests for ask / intervene / red flags / notes."""

    @pytest.mark.asyncio
    async def test_ask_appends_narrative_and_returns_hints(self, engine, clock):
        await engine.start("learner-1", "chest_pain_01")
        try:
            clock.advance(45)
            result = await engine.ask("Where does it hurt?")

            assert "middle of my chest" in result.content
            assert "rf_crushing_pain" in result.red_flag_hints
            roles = [entry.role for entry in result.encounter.narrative]
            assert roles[-2:] == ["learner", "patient"]
            assert result.encounter.narrative[-2].timestamp == 45
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_intervene_records_sequence_and_merges_delta(self, engine, clock):
        await engine.start("learner-1", "chest_pain_01")
        try:
            clock.advance(30)
            first = await engine.intervene(InterventionType.TREATMENT, "Oxygen therapy")
            clock.advance(30)
            second = await engine.intervene(
                InterventionType.MEDICATION, "Nitroglycerine", parameters={"dose": "0.4 mg"}
            )

            assert first.sequence == 0
            assert first.timestamp == 30
            assert second.sequence == 1
            assert second.parameters == {"dose": "0.4 mg"}

            state = engine.snapshot()
            assert state.vital_signs.oxygen_saturation == 97
            assert state.vital_signs.blood_pressure == "138/86"
            assert state.patient_state.pain.score == 6
            assert state.patient_state.pain.location == "substernal"
            assert state.vital_signs.heart_rate == 104
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_red_flag_identification_is_idempotent(self, engine, clock):
        await engine.start("learner-1", "chest_pain_01")
        try:
            clock.advance(90)
            first = engine.identify_red_flag("rf_diaphoresis")
            clock.advance(60)
            second = engine.identify_red_flag("rf_diaphoresis")

            assert first.find_red_flag("rf_diaphoresis").time_identified == 90
            assert second == first
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_unknown_red_flag_is_noop(self, engine):
        await engine.start("learner-1", "chest_pain_01")
        try:
            before = engine.snapshot()
            after = engine.identify_red_flag("rf_unknown")
            assert after == before
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_add_note(self, engine):
        await engine.start("learner-1", "chest_pain_01")
        try:
            state = engine.add_note("Patient anxious")
            assert state.notes == ["Patient anxious"]
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_oracle_failure_leaves_state_unchanged(self, mock_engine, mock_oracle, sink):
        await mock_engine.start("learner-1", "chest_pain_01")
        try:
            before = mock_engine.snapshot()
            mock_oracle.respond.side_effect = OracleUnavailable("timeout")
            mock_oracle.intervene.side_effect = RuntimeError("boom")

            with pytest.raises(OracleUnavailable):
                await mock_engine.ask("How are you?")
            with pytest.raises(OracleUnavailable):
                await mock_engine.intervene(InterventionType.TREATMENT, "Aspirin")

            assert mock_engine.snapshot() == before
            errors = [e for e in sink.events if e.event_type == EventType.ORACLE_CALL_ERROR]
            assert [e.operation for e in errors] == ["respond", "intervene"]
        finally:
            await mock_engine.cleanup()

    @pytest.mark.asyncio
    async def test_oracle_sees_snapshot_not_live_state(self, mock_engine, mock_oracle):
        await mock_engine.start("learner-1", "chest_pain_01")
        try:
            seen = []

            async def respond(state, question):
                seen.append(state)
                state.notes.append("oracle tampering")
                return OracleReply(content="Fine.")

            mock_oracle.respond.side_effect = respond
            await mock_engine.ask("How are you?")

            assert mock_engine.snapshot().notes == []
            assert seen[0].scenario_id == "chest_pain_01"
        finally:
            await mock_engine.cleanup()


class TestCompletion:
    """Tests for completion and post-completion immutability."""

    @pytest.mark.asyncio
    async def test_complete_then_mutations_rejected(self, engine, clock):
        await engine.start("learner-1", "chest_pain_01")
        clock.advance(120)
        final = await engine.complete()

        assert final.status == EncounterStatus.COMPLETED
        assert final.current_time == 120

        with pytest.raises(InvalidState):
            await engine.ask("Still there?")
        with pytest.raises(InvalidState):
            await engine.intervene(InterventionType.TREATMENT, "Aspirin")
        with pytest.raises(InvalidState):
            engine.identify_red_flag("rf_diaphoresis")
        with pytest.raises(InvalidState):
            engine.add_note("late")

        assert engine.snapshot() == final

    @pytest.mark.asyncio
    async def test_complete_twice_raises_already_completed(self, engine):
        await engine.start("learner-1", "chest_pain_01")
        await engine.complete()

        with pytest.raises(AlreadyCompleted):
            await engine.complete()

    @pytest.mark.asyncio
    async def test_fail_records_reason(self, engine):
        await engine.start("learner-1", "chest_pain_01")
        final = await engine.fail("Patient went into cardiac arrest")

        assert final.status == EncounterStatus.FAILED
        assert final.narrative[-1].content == "Patient went into cardiac arrest"
        with pytest.raises(AlreadyCompleted):
            await engine.complete()

    @pytest.mark.asyncio
    async def test_restart_after_completion(self, engine):
        await engine.start("learner-1", "chest_pain_01")
        await engine.complete()

        encounter = await engine.start("learner-1", "respiratory_distress_01")
        try:
            assert encounter.scenario_id == "respiratory_distress_01"
            assert encounter.status == EncounterStatus.IN_PROGRESS
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_response_after_cleanup_is_discarded(self, mock_engine, mock_oracle):
        await mock_engine.start("learner-1", "chest_pain_01")
        release = asyncio.Event()

        async def slow_respond(state, question):
            await release.wait()
            return OracleReply(content="Too late.")

        mock_oracle.respond.side_effect = slow_respond
        pending = asyncio.create_task(mock_engine.ask("Hello?"))
        await asyncio.sleep(0)

        await mock_engine.cleanup()
        release.set()

        with pytest.raises(NoActiveEncounter):
            await pending
        assert mock_engine.snapshot() is None


class TestRefreshLoop:
    """Tests for the periodic vitals refresh."""

    @pytest.mark.asyncio
    async def test_tick_merges_oracle_delta(self, store, mock_oracle, clock):
        mock_oracle.tick.return_value = StateDelta(vital_signs=VitalSignsPatch(heart_rate=130))
        engine = ScenarioEngine(store, mock_oracle, refresh_interval=0.01, clock=clock)

        await engine.start("learner-1", "chest_pain_01")
        try:
            await asyncio.sleep(0.1)
            state = engine.snapshot()
            assert engine.tick_count >= 1
            assert state.vital_signs.heart_rate == 130
            assert state.vital_signs.blood_pressure == "158/94"
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_tick_failure_does_not_stop_loop(self, store, mock_oracle, clock):
        mock_oracle.tick.side_effect = [
            OracleUnavailable("down"),
            StateDelta(vital_signs=VitalSignsPatch(oxygen_saturation=90)),
        ] + [StateDelta()] * 100
        engine = ScenarioEngine(store, mock_oracle, refresh_interval=0.01, clock=clock)

        await engine.start("learner-1", "chest_pain_01")
        try:
            await asyncio.sleep(0.1)
            assert mock_oracle.tick.await_count >= 2
            assert engine.snapshot().vital_signs.oxygen_saturation == 90
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_advancing_injected_clock_does_not_tick(self, store, mock_oracle, clock):
        engine = ScenarioEngine(store, mock_oracle, refresh_interval=3600, clock=clock)

        await engine.start("learner-1", "chest_pain_01")
        try:
            clock.advance(7200)
            await asyncio.sleep(0.02)
            assert mock_oracle.tick.await_count == 0
            assert engine.tick_count == 0
        finally:
            await engine.cleanup()

    @pytest.mark.asyncio
    async def test_no_tick_after_completion(self, store, mock_oracle, clock):
        engine = ScenarioEngine(store, mock_oracle, refresh_interval=0.01, clock=clock)

        await engine.start("learner-1", "chest_pain_01")
        await asyncio.sleep(0.05)
        await engine.complete()
        calls = mock_oracle.tick.await_count

        await asyncio.sleep(0.05)
        assert mock_oracle.tick.await_count == calls

    @pytest.mark.asyncio
    async def test_user_operations_serialize_with_ticks(self, store, mock_oracle, clock):
        active = 0
        overlap = False

        async def guarded(*args, **kwargs):
            nonlocal active, overlap
            active += 1
            if active > 1:
                overlap = True
            await asyncio.sleep(0.005)
            active -= 1

        async def tick(state):
            await guarded()
            return StateDelta()

        async def intervene(state, request):
            await guarded()
            return InterventionOutcome(outcome="ok")

        mock_oracle.tick.side_effect = tick
        mock_oracle.intervene.side_effect = intervene
        engine = ScenarioEngine(store, mock_oracle, refresh_interval=0.001, clock=clock)

        await engine.start("learner-1", "chest_pain_01")
        try:
            await asyncio.gather(
                *(engine.intervene(InterventionType.TREATMENT, f"Step {i}") for i in range(5))
            )
            assert not overlap
            assert [i.sequence for i in engine.snapshot().interventions] == [0, 1, 2, 3, 4]
        finally:
            await engine.cleanup()

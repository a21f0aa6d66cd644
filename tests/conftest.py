"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from ems_trainer.config import Settings
from ems_trainer.models import (
    AssessmentCriteria,
    AssessmentFinding,
    AssessmentPhase,
    FeedbackTemplate,
    FindingType,
    RedFlagSpec,
    ScenarioContext,
    ScenarioTemplate,
    StateDelta,
    VitalSigns,
)
from ems_trainer.models.templates import CriticalActionSpec, RedFlagRecognitionSpec
from ems_trainer.oracle import BaseOracle, InterventionOutcome, OracleReply, ScriptedOracle
from ems_trainer.templates import InMemoryTemplateStore, builtin_store


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Telemetry sink that keeps every event in memory."""

    def __init__(self):
        self.events = []

    def record(self, event) -> None:
        self.events.append(event)


class FailingSink:
    def record(self, event) -> None:
        raise RuntimeError("tracking backend down")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return FailingSink()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        vitals_refresh_interval=3600,
        telemetry_enabled=False,
        telemetry_dir=tmp_path / "telemetry",
        anthropic_api_key="",
    )


@pytest.fixture
def store():
    """Store with the built-in scenario library."""
    return builtin_store()


@pytest.fixture
def scripted_oracle(store):
    return ScriptedOracle(store)


@pytest.fixture
def mock_oracle():
    """Oracle whose calls return empty deltas unless reconfigured."""
    oracle = MagicMock(spec=BaseOracle)
    oracle.tick = AsyncMock(return_value=StateDelta())
    oracle.respond = AsyncMock(return_value=OracleReply(content="I feel dizzy."))
    oracle.intervene = AsyncMock(
        return_value=InterventionOutcome(outcome="Done.", effectiveness=0.5)
    )
    return oracle


@pytest.fixture
def gated_scenario():
    """Small scenario: C1 -> C2 in primary, C3 in secondary, one red flag."""
    return ScenarioTemplate(
        id="gated",
        title="Dependency gating",
        scenario_type="gated",
        vital_signs=VitalSigns(
            heart_rate=80,
            blood_pressure="120/80",
            respiratory_rate=16,
            oxygen_saturation=98,
            temperature=37.0,
        ),
        context=ScenarioContext(location="Street", time_of_day="day"),
        red_flags=[RedFlagSpec(id="rf_a", category="cardiac", description="Flag A")],
        criteria=[
            AssessmentCriteria(id="C1", category=AssessmentPhase.PRIMARY, description="Step one", order=1),
            AssessmentCriteria(
                id="C2",
                category=AssessmentPhase.PRIMARY,
                description="Step two",
                order=2,
                dependencies=["C1"],
            ),
            AssessmentCriteria(
                id="C3",
                category=AssessmentPhase.SECONDARY,
                description="Step three",
                time_target=60,
            ),
        ],
        findings=[
            AssessmentFinding(
                id="F1",
                type=FindingType.CRITICAL,
                description="Finding one",
                related_criteria=["C1"],
                requires_intervention=True,
                suggested_interventions=["Oxygen therapy"],
                expected=True,
            ),
            AssessmentFinding(
                id="F2",
                type=FindingType.NORMAL,
                description="Finding two",
                related_criteria=["C2"],
            ),
        ],
    )


@pytest.fixture
def gated_feedback_template():
    return FeedbackTemplate(
        category="Gated",
        critical_actions=[
            CriticalActionSpec(action="A", rationale="Needed first", time_target=60),
            CriticalActionSpec(action="B", rationale="Needed second", time_target=120),
        ],
        red_flag_recognition=[
            RedFlagRecognitionSpec(finding="Flag A", significance="Bad sign", expected_action=["A"]),
        ],
        excellent_care_markers=["Textbook care"],
        learning_points=["Do A early"],
    )


@pytest.fixture
def gated_store(gated_scenario, gated_feedback_template):
    return InMemoryTemplateStore(
        scenarios=[gated_scenario],
        feedback_templates={"gated": gated_feedback_template},
    )

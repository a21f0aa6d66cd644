"""Tests for the performance evaluator."""

import pytest

from ems_trainer.feedback import (
    assess_timing,
    category_score,
    evaluate,
    format_feedback,
    performance_level,
)
from ems_trainer.models import (
    ActionRecord,
    FeedbackTemplate,
    InterventionRecord,
    PerformanceTrace,
    RedFlagIdentification,
    TimingStatus,
)
from ems_trainer.models.templates import (
    CriticalActionSpec,
    InterventionPhaseSpec,
    InterventionPriority,
    RedFlagRecognitionSpec,
)
from ems_trainer.templates.library import FEEDBACK_TEMPLATES


def _trace(actions=(), flags=(), interventions=(), scenario_type="gated"):
    return PerformanceTrace(
        scenario_type=scenario_type,
        actions=list(actions),
        identified_red_flags=list(flags),
        interventions=list(interventions),
    )


@pytest.fixture
def sequenced_template():
    return FeedbackTemplate(
        category="Sequenced",
        critical_actions=[CriticalActionSpec(action="Oxygen", rationale="Hypoxia", time_target=120)],
        red_flag_recognition=[
            RedFlagRecognitionSpec(finding="SpO2 < 90%", significance="Hypoxia", expected_action=["Oxygen"])
        ],
        intervention_sequence=[
            InterventionPhaseSpec(
                priority=InterventionPriority.IMMEDIATE,
                interventions=["Oxygen"],
                rationale="Treat hypoxia first",
            ),
            InterventionPhaseSpec(
                priority=InterventionPriority.URGENT,
                interventions=["IV access"],
                rationale="Prepare for medications",
            ),
        ],
        intervention_steps={"IV access": ["Select site", "Insert catheter"]},
        excellent_care_markers=["Early oxygen"],
        learning_points=["Oxygen first"],
    )


class TestHelpers:
    """Tests for scoring helpers."""

    @pytest.mark.parametrize(
        "actual,target,expected",
        [
            (40, 60, TimingStatus.EXCELLENT),
            (48, 60, TimingStatus.EXCELLENT),
            (50, 60, TimingStatus.EXCELLENT),
            (60, 60, TimingStatus.ACCEPTABLE),
            (72, 60, TimingStatus.ACCEPTABLE),
            (74, 60, TimingStatus.DELAYED),
            (90, 60, TimingStatus.DELAYED),
        ],
    )
    def test_assess_timing(self, actual, target, expected):
        assert assess_timing(actual, target) == expected

    @pytest.mark.parametrize(
        "score,level",
        [(100, "Expert"), (90, "Expert"), (89, "Proficient"), (80, "Proficient"),
         (70, "Competent"), (69, "Developing"), (0, "Developing")],
    )
    def test_performance_level(self, score, level):
        assert performance_level(score) == level

    def test_empty_category_scores_zero(self):
        assert category_score(0, 0) == 0.0
        assert category_score(1, 1) == 50.0


class TestEvaluate:
    """Tests for evaluate."""

    def test_walkthrough_two_actions_one_missed(self, gated_feedback_template, settings):
        trace = _trace(
            actions=[ActionRecord(action="A", timestamp=50)],
            flags=[RedFlagIdentification(flag="Flag A", time_to_identification=200)],
        )

        result = evaluate(trace, gated_feedback_template, settings)

        assert result.category_scores.critical_actions == 50
        assert result.category_scores.red_flags == 100
        assert result.category_scores.interventions == 0
        assert result.overall_score == 50
        assert result.performance_level == "Developing"
        assert result.critical_actions.completed == ["A"]
        assert result.critical_actions.missed == ["B"]
        assert result.critical_actions.timing[0].status == TimingStatus.EXCELLENT
        assert result.red_flags.timing[0].assessment == "Prompt"
        assert "Excellent timing on A" in result.excellent_performance
        assert "Critical action missed: B - Needed second" in result.improvement_areas
        assert "Consider A for Flag A" in result.improvement_areas
        assert result.recommended_review == ("Review critical actions and their timing",)
        assert "Textbook care" not in result.excellent_performance
        assert result.learning_points == ("Do A early",)

    def test_evaluation_is_deterministic(self, gated_feedback_template, settings):
        trace = _trace(actions=[ActionRecord(action="A", timestamp=50)])
        assert evaluate(trace, gated_feedback_template, settings) == evaluate(
            trace, gated_feedback_template, settings
        )

    def test_empty_trace_scores_zero(self, gated_feedback_template, settings):
        result = evaluate(_trace(), gated_feedback_template, settings)

        assert result.overall_score == 0
        assert result.critical_actions.missed == ["A", "B"]
        assert result.red_flags.missed == ["Flag A"]
        assert "Missed red flag: Flag A - Bad sign" in result.improvement_areas
        assert set(result.recommended_review) == {
            "Review critical actions and their timing",
            "Review red flag recognition",
        }

    def test_flawless_performance_earns_markers(self, sequenced_template, settings):
        trace = _trace(
            actions=[ActionRecord(action="oxygen", timestamp=30)],
            flags=[
                RedFlagIdentification(
                    flag="SpO2 < 90%", time_to_identification=20, associated_actions=["Oxygen"]
                )
            ],
            interventions=[
                InterventionRecord(name="Oxygen", timing=30, sequence=0),
                InterventionRecord(
                    name="IV access", timing=90, sequence=1, completed_steps=["Select site", "Insert catheter"]
                ),
            ],
        )

        result = evaluate(trace, sequenced_template, settings)

        assert result.overall_score == 100
        assert result.performance_level == "Expert"
        assert result.interventions.sequencing.correct == ["Oxygen", "IV access"]
        assert result.interventions.completion.complete == ["Oxygen", "IV access"]
        assert "Early oxygen" in result.excellent_performance
        assert "Appropriate response to SpO2 < 90%" in result.excellent_performance
        assert result.improvement_areas == ()

    def test_out_of_order_and_incomplete_interventions(self, sequenced_template, settings):
        trace = _trace(
            actions=[ActionRecord(action="Oxygen", timestamp=30)],
            interventions=[
                InterventionRecord(name="IV access", timing=20, sequence=0, completed_steps=["Select site"]),
                InterventionRecord(name="Oxygen", timing=30, sequence=1),
            ],
        )

        result = evaluate(trace, sequenced_template, settings)

        assert result.interventions.sequencing.out_of_order == ["Oxygen", "IV access"]
        assert result.interventions.completion.incomplete == ["IV access"]
        assert "Consider Oxygen earlier in sequence - Treat hypoxia first" in result.improvement_areas
        assert "Ensure completion of all steps for IV access" in result.improvement_areas
        assert "Review intervention prioritization" in result.recommended_review
        assert "Early oxygen" not in result.excellent_performance

    def test_delayed_critical_action(self, sequenced_template, settings):
        trace = _trace(actions=[ActionRecord(action="Oxygen", timestamp=300)])
        result = evaluate(trace, sequenced_template, settings)

        assert result.critical_actions.timing[0].status == TimingStatus.DELAYED
        assert "Consider faster Oxygen - target: 120s" in result.improvement_areas

    def test_delayed_red_flag(self, sequenced_template, settings):
        trace = _trace(flags=[RedFlagIdentification(flag="SpO2 < 90%", time_to_identification=300)])
        result = evaluate(trace, sequenced_template, settings)

        assert result.red_flags.timing[0].assessment == "Delayed"

    def test_result_is_immutable(self, gated_feedback_template, settings):
        result = evaluate(_trace(), gated_feedback_template, settings)
        with pytest.raises(Exception):
            result.overall_score = 99

    def test_builtin_chest_pain_template(self, settings):
        trace = _trace(
            scenario_type="chest_pain",
            actions=[
                ActionRecord(action="12-lead ECG", timestamp=120),
                ActionRecord(action="Aspirin", timestamp=240),
                ActionRecord(action="Hospital notification", timestamp=600),
            ],
        )
        result = evaluate(trace, FEEDBACK_TEMPLATES["chest_pain"], settings)

        assert result.category_scores.critical_actions == 100
        assert result.red_flags.missed == [
            "Crushing chest pain with radiation",
            "Diaphoresis with nausea",
            "Hypotension with chest pain",
        ]
        assert 0 <= result.overall_score <= 100


class TestFormatFeedback:
    """Tests for format_feedback."""

    def test_format_lists_sections(self, gated_feedback_template, settings):
        trace = _trace(
            actions=[ActionRecord(action="A", timestamp=50)],
            flags=[RedFlagIdentification(flag="Flag A", time_to_identification=200)],
        )
        text = format_feedback(evaluate(trace, gated_feedback_template, settings))

        assert text.startswith("Overall Performance Score: 50% (Developing)")
        assert "✓ A" in text
        assert "✗ B" in text
        assert "✓ Flag A" in text
        assert "Areas for Improvement:" in text
        assert "Review critical actions and their timing" in text

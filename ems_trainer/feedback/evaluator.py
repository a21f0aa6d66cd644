"""Performance evaluator - scores a recorded encounter against a scoring template.

Pure and deterministic: the same trace and template always produce the same
FeedbackResult. Scenario types differ only in template data.
"""

import math
from typing import Optional

from ems_trainer.config import Settings, get_settings
from ems_trainer.models.feedback import (
    ActionTiming,
    CategoryScores,
    CompletionFeedback,
    CriticalActionsFeedback,
    FeedbackResult,
    InterventionFeedback,
    PerformanceTrace,
    RedFlagFeedback,
    RedFlagTiming,
    SequencingFeedback,
    TimingStatus,
)
from ems_trainer.models.templates import FeedbackTemplate

WEIGHTS = {
    "critical_actions": 0.4,
    "red_flags": 0.3,
    "interventions": 0.3,
}

PERFORMANCE_LEVELS = [
    (90, "Expert"),
    (80, "Proficient"),
    (70, "Competent"),
]

REVIEW_CRITICAL_ACTIONS = "Review critical actions and their timing"
REVIEW_RED_FLAGS = "Review red flag recognition"
REVIEW_INTERVENTIONS = "Review intervention prioritization"


def performance_level(score: float) -> str:
    for threshold, label in PERFORMANCE_LEVELS:
        if score >= threshold:
            return label
    return "Developing"


def assess_timing(
    actual: float,
    target: float,
    excellent_ratio: float = 0.8,
    acceptable_ratio: float = 1.2,
) -> TimingStatus:
    """Classify actual/target.

    The excellent boundary is checked at one-decimal precision, the acceptable
    boundary against the raw ratio.
    """
    ratio = actual / target
    if round(ratio, 1) <= excellent_ratio:
        return TimingStatus.EXCELLENT
    if ratio <= acceptable_ratio:
        return TimingStatus.ACCEPTABLE
    return TimingStatus.DELAYED


def category_score(hits: int, misses: int) -> float:
    """hits / (hits + misses) x 100; an empty category scores 0."""
    total = hits + misses
    return hits / total * 100 if total else 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _key(name: str) -> str:
    return name.strip().lower()


class _Notes:
    """Accumulates strengths and improvement areas in evaluation order."""

    def __init__(self):
        self.excellent: list[str] = []
        self.improvements: list[str] = []


def _critical_actions(
    trace: PerformanceTrace,
    template: FeedbackTemplate,
    settings: Settings,
    notes: _Notes,
) -> CriticalActionsFeedback:
    completed: list[str] = []
    missed: list[str] = []
    timing: list[ActionTiming] = []

    for spec in template.critical_actions:
        performed = next(
            (a for a in trace.actions if _key(a.action) == _key(spec.action)), None
        )
        if performed is None:
            missed.append(spec.action)
            notes.improvements.append(f"Critical action missed: {spec.action} - {spec.rationale}")
            continue

        completed.append(spec.action)
        status = assess_timing(
            performed.timestamp,
            spec.time_target,
            settings.timing_excellent_ratio,
            settings.timing_acceptable_ratio,
        )
        timing.append(
            ActionTiming(
                action=spec.action,
                actual=performed.timestamp,
                target=spec.time_target,
                status=status,
            )
        )
        if status == TimingStatus.EXCELLENT:
            notes.excellent.append(f"Excellent timing on {spec.action}")
        elif status == TimingStatus.DELAYED:
            notes.improvements.append(
                f"Consider faster {spec.action} - target: {spec.time_target:g}s"
            )

    return CriticalActionsFeedback(completed=completed, missed=missed, timing=timing)


def _red_flags(
    trace: PerformanceTrace,
    template: FeedbackTemplate,
    settings: Settings,
    notes: _Notes,
) -> RedFlagFeedback:
    identified: list[str] = []
    missed: list[str] = []
    timing: list[RedFlagTiming] = []

    for spec in template.red_flag_recognition:
        found = next(
            (f for f in trace.identified_red_flags if _key(f.flag) == _key(spec.finding)), None
        )
        if found is None:
            missed.append(spec.finding)
            notes.improvements.append(f"Missed red flag: {spec.finding} - {spec.significance}")
            continue

        identified.append(spec.finding)
        expected = {_key(a) for a in spec.expected_action}
        if any(_key(a) in expected for a in found.associated_actions):
            notes.excellent.append(f"Appropriate response to {spec.finding}")
        else:
            notes.improvements.append(
                f"Consider {', '.join(spec.expected_action)} for {spec.finding}"
            )

        prompt = found.time_to_identification < settings.red_flag_prompt_threshold
        timing.append(
            RedFlagTiming(
                flag=spec.finding,
                time_to_identification=found.time_to_identification,
                assessment="Prompt" if prompt else "Delayed",
            )
        )

    return RedFlagFeedback(identified=identified, missed=missed, timing=timing)


def _interventions(
    trace: PerformanceTrace,
    template: FeedbackTemplate,
    notes: _Notes,
) -> InterventionFeedback:
    correct: list[str] = []
    out_of_order: list[str] = []
    complete: list[str] = []
    incomplete: list[str] = []
    expected_steps = {_key(name): steps for name, steps in template.intervention_steps.items()}

    for phase_index, phase in enumerate(template.intervention_sequence):
        for name in phase.interventions:
            performed = next(
                (i for i in trace.interventions if _key(i.name) == _key(name)), None
            )
            if performed is None:
                continue

            if performed.sequence == phase_index:
                correct.append(name)
            else:
                out_of_order.append(name)
                notes.improvements.append(
                    f"Consider {name} earlier in sequence - {phase.rationale}"
                )

            if len(performed.completed_steps) == len(expected_steps.get(_key(name), [])):
                complete.append(name)
            else:
                incomplete.append(name)
                notes.improvements.append(f"Ensure completion of all steps for {name}")

    return InterventionFeedback(
        sequencing=SequencingFeedback(correct=correct, out_of_order=out_of_order),
        completion=CompletionFeedback(complete=complete, incomplete=incomplete),
    )


def evaluate(
    trace: PerformanceTrace,
    template: FeedbackTemplate,
    settings: Optional[Settings] = None,
) -> FeedbackResult:
    """Score a performance trace.

    Args:
        trace: Actions, red flag identifications and interventions of one encounter
        template: Scoring template for the trace's scenario type
        settings: Timing thresholds (default from environment)

    Returns:
        Immutable FeedbackResult with a 0-100 overall score
    """
    settings = settings or get_settings()
    notes = _Notes()

    critical = _critical_actions(trace, template, settings, notes)
    flags = _red_flags(trace, template, settings, notes)
    interventions = _interventions(trace, template, notes)

    scores = CategoryScores(
        critical_actions=category_score(len(critical.completed), len(critical.missed)),
        red_flags=category_score(len(flags.identified), len(flags.missed)),
        interventions=category_score(
            len(interventions.sequencing.correct), len(interventions.sequencing.out_of_order)
        ),
    )
    overall = _round_half_up(
        scores.critical_actions * WEIGHTS["critical_actions"]
        + scores.red_flags * WEIGHTS["red_flags"]
        + scores.interventions * WEIGHTS["interventions"]
    )
    overall = min(100, max(0, overall))

    review: list[str] = []
    if critical.missed:
        review.append(REVIEW_CRITICAL_ACTIONS)
    if flags.missed:
        review.append(REVIEW_RED_FLAGS)
    if interventions.sequencing.out_of_order:
        review.append(REVIEW_INTERVENTIONS)

    flawless = (
        not critical.missed
        and not flags.missed
        and not interventions.sequencing.out_of_order
        and all(t.status != TimingStatus.DELAYED for t in critical.timing)
    )
    if flawless:
        notes.excellent.extend(template.excellent_care_markers)

    return FeedbackResult(
        overall_score=overall,
        performance_level=performance_level(overall),
        category_scores=scores,
        critical_actions=critical,
        red_flags=flags,
        interventions=interventions,
        learning_points=tuple(template.learning_points),
        recommended_review=tuple(review),
        excellent_performance=tuple(notes.excellent),
        improvement_areas=tuple(notes.improvements),
    )

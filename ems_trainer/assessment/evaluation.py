"""Scoring of a finished structured assessment."""

import math
from typing import Iterable

from ems_trainer.models.assessment import (
    Assessment,
    AssessmentCriteria,
    AssessmentEvaluation,
    AssessmentFeedback,
    AssessmentFinding,
    CriticalFindingsSummary,
    FindingType,
)

WEIGHTS = {
    "completeness": 0.3,
    "timeliness": 0.2,
    "accuracy": 0.3,
    "interventions": 0.2,
}


def timing_score(actual: float, target: float) -> float:
    """100 at or under target, then minus the overage percentage, floored at 0."""
    if actual <= target:
        return 100.0
    overage = (actual - target) / target * 100
    return max(0.0, 100.0 - overage)


def _percent(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator else 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def evaluate_assessment(
    assessment: Assessment,
    criteria: Iterable[AssessmentCriteria],
    findings: Iterable[AssessmentFinding],
) -> AssessmentEvaluation:
    """Score an assessment against its criteria and findings catalogs.

    Args:
        assessment: The finished (or in-progress) assessment
        criteria: Criteria catalog for the scenario
        findings: Findings catalog for the scenario

    Returns:
        AssessmentEvaluation with 0-100 category scores and text feedback
    """
    criteria = list(criteria)
    findings_by_id = {f.id: f for f in findings}
    done = set(assessment.completed_criteria)
    actions_by_criteria = {a.criteria_id: a for a in assessment.actions}

    # Completeness
    required = [c for c in criteria if c.required]
    missing_required = [c for c in required if c.id not in done]
    completeness = _percent(len(required) - len(missing_required), len(required))

    # Timeliness
    timed = [
        timing_score(actions_by_criteria[c.id].duration, c.time_target)
        for c in criteria
        if c.time_target and c.id in actions_by_criteria
    ]
    timeliness = sum(timed) / len(timed) if timed else 0.0

    # Accuracy
    chosen = {fid for a in assessment.actions for fid in a.findings}
    expected = {
        f.id
        for f in findings_by_id.values()
        if f.expected and any(cid in done for cid in f.related_criteria)
    }
    matched = chosen & expected
    wrong = chosen - expected
    accuracy = _percent(len(matched), len(expected) + len(wrong))

    # Critical findings
    critical = [f for f in findings_by_id.values() if f.expected and f.type == FindingType.CRITICAL]
    missed_critical = [f for f in critical if f.id not in chosen]
    critical_summary = CriticalFindingsSummary(
        identified=len(critical) - len(missed_critical),
        missed=len(missed_critical),
    )

    # Intervention appropriateness
    needing = 0
    appropriate = 0
    for action in assessment.actions:
        performed = {name.lower() for name in action.interventions_performed}
        for fid in action.findings:
            finding = findings_by_id.get(fid)
            if finding is None or not finding.requires_intervention:
                continue
            needing += 1
            if performed & {s.lower() for s in finding.suggested_interventions}:
                appropriate += 1
    interventions = _percent(appropriate, needing)

    overall = _round_half_up(
        completeness * WEIGHTS["completeness"]
        + timeliness * WEIGHTS["timeliness"]
        + accuracy * WEIGHTS["accuracy"]
        + interventions * WEIGHTS["interventions"]
    )

    feedback = AssessmentFeedback()
    if required and not missing_required:
        feedback.strengths.append("All required assessment steps completed")
    if timed and timeliness >= 80:
        feedback.strengths.append("Assessment steps completed within target times")
    if accuracy >= 80:
        feedback.strengths.append("Accurate identification of clinical findings")
    if critical and not missed_critical:
        feedback.strengths.append("All critical findings identified")

    for c in missing_required:
        feedback.improvements.append(f"Complete {c.description}")
    for f in missed_critical:
        feedback.improvements.append(f"Missed critical finding: {f.description}")
    if timed and timeliness < 70:
        feedback.improvements.append("Work toward the target time for each assessment step")
    if appropriate < needing:
        feedback.improvements.append("Match interventions to findings that require them")

    if missed_critical:
        feedback.recommendations.append("Review recognition of critical findings")
    if missing_required:
        feedback.recommendations.append("Review the systematic assessment sequence")
    if wrong:
        feedback.recommendations.append("Practice correlating findings with assessment steps")

    return AssessmentEvaluation(
        completeness=completeness,
        timeliness=timeliness,
        accuracy=accuracy,
        critical_findings=critical_summary,
        intervention_appropriateness=interventions,
        overall_score=min(100, max(0, overall)),
        feedback=feedback,
    )

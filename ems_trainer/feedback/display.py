"""Plain-text rendering of a FeedbackResult."""

from ems_trainer.models.feedback import FeedbackResult


def format_feedback(result: FeedbackResult) -> str:
    sections = [
        f"Overall Performance Score: {result.overall_score}% ({result.performance_level})\n",
        "Critical Actions:",
        *(f"✓ {action}" for action in result.critical_actions.completed),
        *(f"✗ {action}" for action in result.critical_actions.missed),
        "\nRed Flag Recognition:",
        *(f"✓ {flag}" for flag in result.red_flags.identified),
        *(f"✗ {flag}" for flag in result.red_flags.missed),
        "\nExcellent Performance:",
        *result.excellent_performance,
        "\nAreas for Improvement:",
        *result.improvement_areas,
        "\nRecommended Review:",
        *result.recommended_review,
    ]
    return "\n".join(sections)

"""Typed errors raised by the simulation and evaluation engines.

Every error is a business condition the caller is expected to handle; the
message is phrased as guidance that can be shown to the learner.
"""

from typing import Optional


class EngineError(Exception):
    """Base exception for engine errors."""

    pass


class NotFound(EngineError):
    """A template or catalog entry does not exist."""

    pass


class TemplateNotFound(NotFound):
    """Unknown scenario or feedback template."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"No template found for '{template_id}'")


class InvalidState(EngineError):
    """Operation attempted outside the state that permits it."""

    pass


class NoActiveEncounter(InvalidState):
    """No encounter is in progress."""

    def __init__(self, message: str = "No active scenario - start a scenario first"):
        super().__init__(message)


class NoActiveAssessment(InvalidState):
    """No assessment is in progress."""

    def __init__(self, message: str = "No active assessment - start an assessment first"):
        super().__init__(message)


class AlreadyCompleted(InvalidState):
    """The encounter or assessment has already been finalized."""

    def __init__(self, message: str = "This activity has already been completed"):
        super().__init__(message)


class InvalidCriteria(EngineError):
    """Assessment criterion is unknown, already completed, or has unmet dependencies."""

    def __init__(
        self,
        criteria_id: str,
        reason: str,
        missing_dependencies: Optional[list[str]] = None,
    ):
        self.criteria_id = criteria_id
        self.reason = reason
        self.missing_dependencies = missing_dependencies or []
        super().__init__(f"Cannot perform '{criteria_id}': {reason}")


class OracleUnavailable(EngineError):
    """The patient oracle failed transiently. Safe to retry."""

    pass

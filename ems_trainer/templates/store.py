"""Clinical template store - read-only access to scenario and scoring templates."""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from ems_trainer.errors import TemplateNotFound
from ems_trainer.models.assessment import AssessmentCriteria, AssessmentFinding
from ems_trainer.models.templates import FeedbackTemplate, ScenarioTemplate

logger = logging.getLogger(__name__)


class TemplateStore(ABC):
    """Template lookups. Every method is idempotent and side-effect free.

    Returned objects are copies; callers may not alter the stored templates.
    """

    @abstractmethod
    def get_scenario(self, scenario_id: str) -> ScenarioTemplate:
        """Get a scenario definition.

        Raises:
            TemplateNotFound: If the scenario id is unknown
        """
        pass

    @abstractmethod
    def get_feedback_template(self, scenario_type: str) -> FeedbackTemplate:
        """Get the scoring template for a scenario type.

        Raises:
            TemplateNotFound: If no template exists for the type
        """
        pass

    @abstractmethod
    def list_scenarios(self) -> list[ScenarioTemplate]:
        """List all scenario definitions."""
        pass

    def get_assessment_criteria(self, scenario_id: str) -> list[AssessmentCriteria]:
        return list(self.get_scenario(scenario_id).criteria)

    def get_findings(self, scenario_id: str) -> list[AssessmentFinding]:
        return list(self.get_scenario(scenario_id).findings)


class InMemoryTemplateStore(TemplateStore):
    """Template store backed by in-process dictionaries."""

    def __init__(
        self,
        scenarios: Iterable[ScenarioTemplate] = (),
        feedback_templates: Optional[dict[str, FeedbackTemplate]] = None,
    ):
        self._scenarios: dict[str, ScenarioTemplate] = {s.id: s for s in scenarios}
        self._feedback: dict[str, FeedbackTemplate] = dict(feedback_templates or {})

    def add_scenario(self, scenario: ScenarioTemplate) -> None:
        self._scenarios[scenario.id] = scenario

    def add_feedback_template(self, scenario_type: str, template: FeedbackTemplate) -> None:
        self._feedback[scenario_type] = template

    def get_scenario(self, scenario_id: str) -> ScenarioTemplate:
        scenario = self._scenarios.get(scenario_id)
        if scenario is None:
            raise TemplateNotFound(scenario_id)
        return scenario.model_copy(deep=True)

    def get_feedback_template(self, scenario_type: str) -> FeedbackTemplate:
        template = self._feedback.get(scenario_type)
        if template is None:
            raise TemplateNotFound(scenario_type)
        return template.model_copy(deep=True)

    def list_scenarios(self) -> list[ScenarioTemplate]:
        return [s.model_copy(deep=True) for s in self._scenarios.values()]


class JsonTemplateStore(InMemoryTemplateStore):
    """Template store loaded from a directory of JSON files.

    Layout::

        <root>/scenarios/*.json   one ScenarioTemplate per file
        <root>/feedback/*.json    one FeedbackTemplate per file, keyed by file stem
    """

    def __init__(self, root: Path):
        super().__init__()
        self.root = root
        self._load()

    def _load(self) -> None:
        for path in sorted((self.root / "scenarios").glob("*.json")):
            try:
                self.add_scenario(ScenarioTemplate.model_validate(json.loads(path.read_text())))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping invalid scenario template {path.name}: {e}")

        for path in sorted((self.root / "feedback").glob("*.json")):
            try:
                template = FeedbackTemplate.model_validate(json.loads(path.read_text()))
                self.add_feedback_template(path.stem, template)
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping invalid feedback template {path.name}: {e}")

        logger.info(
            f"Loaded {len(self._scenarios)} scenarios and {len(self._feedback)} "
            f"feedback templates from {self.root}"
        )


def builtin_store() -> InMemoryTemplateStore:
    """Store preloaded with the built-in scenario library."""
    from ems_trainer.templates.library import BUILTIN_SCENARIOS, FEEDBACK_TEMPLATES

    return InMemoryTemplateStore(BUILTIN_SCENARIOS, FEEDBACK_TEMPLATES)


def create_store_from_settings() -> TemplateStore:
    """Create the template store described by the current settings."""
    from ems_trainer.config import get_settings

    settings = get_settings()
    if settings.template_dir is not None:
        return JsonTemplateStore(settings.template_dir)
    return builtin_store()

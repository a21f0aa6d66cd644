"""Deterministic oracle driven entirely by scenario template data."""

import logging

from ems_trainer.models.encounter import Encounter
from ems_trainer.models.templates import ScenarioTemplate
from ems_trainer.models.vitals import StateDelta
from ems_trainer.oracle.base import (
    BaseOracle,
    InterventionOutcome,
    InterventionRequest,
    OracleReply,
)
from ems_trainer.templates.store import TemplateStore

logger = logging.getLogger(__name__)


# Vital-sign thresholds surfaced as hints alongside any scripted answer
VITAL_HINTS = {
    "hypoxia": lambda v: v.oxygen_saturation < 90,
    "tachycardia": lambda v: v.heart_rate > 120,
    "bradycardia": lambda v: v.heart_rate < 50,
    "hypotension": lambda v: v.systolic is not None and v.systolic < 90,
    "hypoglycemia": lambda v: v.blood_glucose is not None and v.blood_glucose < 60,
}


class ScriptedOracle(BaseOracle):
    """Rule-based oracle for offline training and tests.

    Answers come from keyword-matched scripted responses; vitals drift by
    the template's ``tick_delta``; interventions look up
    ``intervention_effects`` by case-insensitive name.
    """

    def __init__(self, templates: TemplateStore):
        self.templates = templates
        self._cache: dict[str, ScenarioTemplate] = {}

    def _template(self, scenario_id: str) -> ScenarioTemplate:
        if scenario_id not in self._cache:
            self._cache[scenario_id] = self.templates.get_scenario(scenario_id)
        return self._cache[scenario_id]

    async def tick(self, state: Encounter) -> StateDelta:
        template = self._template(state.scenario_id)
        return template.tick_delta or StateDelta()

    async def respond(self, state: Encounter, question: str) -> OracleReply:
        template = self._template(state.scenario_id)
        lower = question.lower()

        hints = [name for name, check in VITAL_HINTS.items() if check(state.vital_signs)]

        for scripted in template.responses:
            if any(kw in lower for kw in scripted.keywords):
                return OracleReply(
                    content=scripted.content,
                    delta=scripted.delta or StateDelta(),
                    red_flag_hints=scripted.red_flag_hints + hints,
                )

        return OracleReply(content=template.default_response, red_flag_hints=hints)

    async def intervene(self, state: Encounter, request: InterventionRequest) -> InterventionOutcome:
        template = self._template(state.scenario_id)
        effect = template.intervention_effects.get(request.name.strip().lower())
        if effect is None:
            logger.debug(f"No scripted effect for '{request.name}' in {state.scenario_id}")
            return InterventionOutcome(outcome=f"{request.name} performed; no noticeable change.")

        return InterventionOutcome(
            outcome=effect.outcome,
            effectiveness=effect.effectiveness,
            delta=effect.delta,
        )

"""Live scenario simulation."""

from ems_trainer.scenario.engine import InteractionResult, ScenarioEngine
from ems_trainer.scenario.merge import apply_delta, merge_patch

__all__ = ["InteractionResult", "ScenarioEngine", "apply_delta", "merge_patch"]

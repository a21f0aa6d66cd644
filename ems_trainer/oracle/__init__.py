"""Patient oracle - scripted and LLM-backed state-delta providers."""

from ems_trainer.oracle.base import (
    BaseOracle,
    InterventionOutcome,
    InterventionRequest,
    OracleReply,
)
from ems_trainer.oracle.llm import LLMOracle, create_oracle_from_settings
from ems_trainer.oracle.scripted import ScriptedOracle

__all__ = [
    "BaseOracle",
    "InterventionOutcome",
    "InterventionRequest",
    "LLMOracle",
    "OracleReply",
    "ScriptedOracle",
    "create_oracle_from_settings",
]

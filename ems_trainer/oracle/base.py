"""Abstract patient oracle interface.

The oracle is the physiological/interaction model behind a scenario: it
never mutates the encounter it is shown, it only returns partial deltas.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field

from ems_trainer.models.encounter import Encounter, InterventionType
from ems_trainer.models.vitals import StateDelta


class OracleReply(BaseModel):
    """Patient answer to a learner question."""

    content: str
    delta: StateDelta = Field(default_factory=StateDelta)
    red_flag_hints: list[str] = Field(default_factory=list)


class InterventionRequest(BaseModel):
    type: InterventionType
    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class InterventionOutcome(BaseModel):
    outcome: str
    effectiveness: float = Field(default=0.0, ge=0.0, le=1.0)
    delta: Optional[StateDelta] = None


class BaseOracle(ABC):
    """Abstract base class for oracle implementations.

    Implementations raise ``OracleUnavailable`` on transient failure.
    """

    @abstractmethod
    async def tick(self, state: Encounter) -> StateDelta:
        """Evolve the patient for one refresh interval."""
        pass

    @abstractmethod
    async def respond(self, state: Encounter, question: str) -> OracleReply:
        """Answer a learner question."""
        pass

    @abstractmethod
    async def intervene(self, state: Encounter, request: InterventionRequest) -> InterventionOutcome:
        """Determine the outcome of an intervention."""
        pass

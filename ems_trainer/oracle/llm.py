"""Anthropic Claude backed patient oracle."""

import json
import logging
from typing import Optional, TypeVar

from anthropic import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncAnthropic,
    RateLimitError,
)
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ems_trainer.errors import OracleUnavailable
from ems_trainer.models.encounter import Encounter
from ems_trainer.models.vitals import StateDelta
from ems_trainer.oracle.base import (
    BaseOracle,
    InterventionOutcome,
    InterventionRequest,
    OracleReply,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError)

SYSTEM_PROMPT = """You are the patient and the physiology model in an EMS training simulation.

You are given the current encounter state and either:
- an elapsed-time tick (evolve vital signs realistically for untreated or treated illness),
- a question from the EMT learner (answer in character as the patient, in plain language),
- an intervention performed by the learner (describe the clinical outcome).

Only include fields that actually change. Omit everything else.
Never reveal the diagnosis. Keep answers short and realistic."""


def parse_structured_response(content: str, schema: type[T]) -> T:
    """Parse a model response (optionally wrapped in a ```json block) into ``schema``.

    Raises:
        OracleUnavailable: If JSON parsing or schema validation fails
    """
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[-1].strip() == "```":
            text = "\n".join(lines[1:-1])
        else:
            text = "\n".join(lines[1:])

    try:
        return schema.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON from oracle: {e}\nContent: {content}")
        raise OracleUnavailable(f"Invalid JSON in oracle response: {e}") from e
    except ValidationError as e:
        logger.error(f"Oracle response doesn't match schema: {e}")
        raise OracleUnavailable(f"Oracle response doesn't match schema: {e}") from e


class LLMOracle(BaseOracle):
    """Oracle that asks Claude for structured state deltas."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        timeout: int = 30,
        max_retries: int = 3,
        retry_wait: float = 1.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        """Initialize the oracle.

        Args:
            api_key: Anthropic API key
            model: Model name
            timeout: Request timeout in seconds
            max_retries: Attempts per call on transient API errors
            retry_wait: Base backoff in seconds between attempts
            client: Preconfigured client (tests)
        """
        self._model = model
        self._timeout = timeout
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self._client = client or AsyncAnthropic(api_key=api_key, timeout=timeout)

    @property
    def model_name(self) -> str:
        return self._model

    async def _complete(self, prompt: str, schema: type[T], temperature: float) -> T:
        schema_json = json.dumps(schema.model_json_schema(), indent=2)
        content = (
            f"{prompt}\n\nRespond with valid JSON matching this schema:\n"
            f"```json\n{schema_json}\n```\n\nRespond ONLY with the JSON object, no other text."
        )

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=self.retry_wait, min=self.retry_wait, max=10),
            ):
                with attempt:
                    response = await self._client.messages.create(
                        model=self._model,
                        system=SYSTEM_PROMPT,
                        messages=[{"role": "user", "content": content}],
                        temperature=temperature,
                        max_tokens=1024,
                    )
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.warning(f"Oracle unavailable after {self.max_retries} attempts: {cause}")
            raise OracleUnavailable("Patient simulation is temporarily unavailable") from cause
        except APIError as e:
            logger.error(f"Oracle request failed: {e}")
            raise OracleUnavailable(f"Patient simulation request failed: {e}") from e

        text = "".join(block.text for block in response.content if block.type == "text")
        return parse_structured_response(text, schema)

    async def tick(self, state: Encounter) -> StateDelta:
        prompt = (
            "## Encounter state\n"
            f"{state.summary_for_prompt()}\n\n"
            "## Event\nElapsed-time tick. Return the vital sign / patient state changes."
        )
        return await self._complete(prompt, StateDelta, temperature=0.3)

    async def respond(self, state: Encounter, question: str) -> OracleReply:
        prompt = (
            "## Encounter state\n"
            f"{state.summary_for_prompt()}\n\n"
            f"## Learner question\n{question}"
        )
        return await self._complete(prompt, OracleReply, temperature=0.7)

    async def intervene(self, state: Encounter, request: InterventionRequest) -> InterventionOutcome:
        params = ", ".join(f"{k}={v}" for k, v in request.parameters.items())
        prompt = (
            "## Encounter state\n"
            f"{state.summary_for_prompt()}\n\n"
            f"## Intervention\n{request.type.value}: {request.name}"
            + (f" ({params})" if params else "")
        )
        return await self._complete(prompt, InterventionOutcome, temperature=0.3)


def create_oracle_from_settings(templates=None) -> BaseOracle:
    """Create the LLM oracle when an API key is configured, else the scripted oracle."""
    from ems_trainer.config import get_settings
    from ems_trainer.oracle.scripted import ScriptedOracle
    from ems_trainer.templates.store import create_store_from_settings

    settings = get_settings()
    if settings.has_anthropic_key:
        return LLMOracle(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout=settings.oracle_timeout,
            max_retries=settings.oracle_max_retries,
        )

    logger.info("No Anthropic API key configured, using scripted oracle")
    return ScriptedOracle(templates or create_store_from_settings())

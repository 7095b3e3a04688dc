"""Generation client shared by all AI-driven stages.

Wraps PydanticAI agents behind three capabilities:

    grounded_search:     text + citations, using Gemini Google Search grounding
    generate_text:       plain markdown generation
    generate_structured: output constrained to a Python type / pydantic schema

Model strings use PydanticAI format (``google-gla:gemini-2.0-flash``), or
``openai:<name>@<base_url>`` for a local OpenAI-compatible server, which
gets PromptedOutput since such servers lack tool_choice support.

Every call is bounded by ``config.generation_timeout``. Failures surface as
typed pipeline errors: SchemaMismatch when structured output cannot be
parsed, StageFailure for everything else.
"""

import asyncio
import logging
from typing import Any, TypeVar

from openai import AsyncOpenAI
from pydantic_ai import Agent, PromptedOutput, WebSearchTool
from pydantic_ai.exceptions import UnexpectedModelBehavior
from pydantic_ai.messages import BuiltinToolReturnPart, ModelMessage, ModelResponse
from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.profiles.openai import OpenAIModelProfile
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from config import Config
from errors import SchemaMismatch, StageFailure
from models.news import Source
from tools.utils import get_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"

# tool_name of grounding results in the message history
WEB_SEARCH_TOOL = "web_search"


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse local model string into (model_name, base_url) or None if not local."""
    if model_str.startswith("openai:") and "@" in model_str:
        model_name, base_url = model_str[len("openai:"):].split("@", 1)
        return model_name, base_url
    return None


def _create_model(model_str: str, gemini_api_key: str = "") -> Model | str:
    """Create the model for a PydanticAI model string.

    Supports:
    - Local models: 'openai:{model_name}@http://127.0.0.1:8080/v1'
    - Gemini: 'google-gla:gemini-2.0-flash' (keyed from config, not env)
    - Anything else PydanticAI resolves by name
    """
    parsed = _parse_local_model(model_str)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using local model | model=%s base_url=%s", model_name, base_url)
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        return OpenAIChatModel(
            model_name,
            provider=OpenAIProvider(openai_client=client),
            profile=OpenAIModelProfile(supports_json_object_output=False),
        )
    if model_str.startswith("google-gla:") and gemini_api_key:
        return GoogleModel(
            model_str[len("google-gla:"):],
            provider=GoogleProvider(api_key=gemini_api_key),
        )
    return model_str


def extract_sources(messages: list[ModelMessage]) -> list[Source]:
    """Collect web search citations from an agent run, in citation order.

    Grounding results arrive as BuiltinToolReturnPart entries whose content
    is a list of {uri|url, title} dicts. Nothing found means no sources.
    """
    sources: list[Source] = []
    for message in messages:
        if not isinstance(message, ModelResponse):
            continue
        for part in message.parts:
            if not isinstance(part, BuiltinToolReturnPart) or part.tool_name != WEB_SEARCH_TOOL:
                continue
            content = part.content if isinstance(part.content, list) else []
            for chunk in content:
                if not isinstance(chunk, dict):
                    continue
                url = chunk.get("uri") or chunk.get("url")
                if not url:
                    continue
                sources.append(Source(title=chunk.get("title") or "Source", url=url))
    return sources


class GenerationClient:
    """Entry point for every model call in the pipeline.

    Agents are built lazily and cached per (model, output type, system
    prompt, grounding). Token usage accumulates across calls.

    Example:
        >>> client = GenerationClient(config)
        >>> text, sources = await client.grounded_search("Latest news about X")
        >>> keywords = await client.generate_structured(prompt, list[str])
    """

    def __init__(self, config: Config, model: Model | None = None):
        """Initialize the client.

        Args:
            config: Application configuration (models, key, timeout)
            model: Optional model instance used for every call instead of
                the configured model strings
        """
        self.config = config
        self._override = model
        self._agents: dict[tuple, Agent] = {}
        self.input_tokens = 0
        self.output_tokens = 0

    def _model(self, model_str: str) -> Model | str:
        if self._override is not None:
            return self._override
        return _create_model(model_str, self.config.gemini_api_key)

    def _agent(
        self,
        model_str: str,
        output_type: Any = str,
        system_prompt: str = "",
        grounded: bool = False,
    ) -> Agent:
        key = (model_str, repr(output_type), system_prompt, grounded)
        agent = self._agents.get(key)
        if agent is None:
            if output_type is not str and _parse_local_model(model_str):
                output_type = PromptedOutput(output_type)
            agent = Agent(
                self._model(model_str),
                output_type=output_type,
                system_prompt=system_prompt,
                builtin_tools=[WebSearchTool()] if grounded else [],
            )
            self._agents[key] = agent
        return agent

    async def _run(self, agent: Agent, prompt: str, stage: str | None):
        try:
            result = await asyncio.wait_for(agent.run(prompt), timeout=self.config.generation_timeout)
        except asyncio.TimeoutError as e:
            raise StageFailure(
                f"Generation timed out after {self.config.generation_timeout:.0f}s", stage=stage
            ) from e
        except UnexpectedModelBehavior as e:
            raise SchemaMismatch(f"Model output did not match the requested schema: {e}", stage=stage) from e
        except Exception as e:
            raise StageFailure(f"Generation failed ({type(e).__name__}): {e}", stage=stage) from e

        usage = result.usage()
        self.input_tokens += usage.input_tokens or 0
        self.output_tokens += usage.output_tokens or 0
        logger.debug(
            "Generation complete | stage=%s input_tokens=%d output_tokens=%d",
            stage or "-", usage.input_tokens or 0, usage.output_tokens or 0,
        )
        return result

    async def grounded_search(
        self,
        prompt: str,
        system_prompt: str = "",
        stage: str | None = None,
    ) -> tuple[str, list[Source]]:
        """Generate text with live web search grounding.

        Returns:
            (generated text, citations in order; empty if none were returned)
        """
        agent = self._agent(self.config.search_model, str, system_prompt, grounded=True)
        result = await self._run(agent, prompt, stage)
        return result.output, extract_sources(result.all_messages())

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "",
        stage: str | None = None,
        model: str | None = None,
    ) -> str:
        """Generate free text with the generation model (or an explicit one)."""
        agent = self._agent(model or self.config.generation_model, str, system_prompt)
        result = await self._run(agent, prompt, stage)
        return result.output

    async def generate_structured(
        self,
        prompt: str,
        output_type: type[T],
        system_prompt: str = "",
        stage: str | None = None,
    ) -> T:
        """Generate a value conforming to output_type using the filter model.

        Raises:
            SchemaMismatch: Output could not be parsed as output_type
            StageFailure: Any other generation failure
        """
        agent = self._agent(self.config.filter_model, output_type, system_prompt)
        result = await self._run(agent, prompt, stage)
        return result.output

    async def list_available_models(self) -> list[str]:
        """List model names visible to the configured Gemini key.

        Diagnostic only: returns an empty list on any failure.
        """
        if not self.config.gemini_api_key:
            return []
        try:
            status, data = await get_json(
                MODELS_URL,
                params={"key": self.config.gemini_api_key},
                timeout=self.config.request_timeout,
            )
        except Exception as e:
            logger.warning("Model listing failed: %s", e)
            return []
        if status != 200 or not isinstance(data, dict):
            logger.warning("Model listing failed | status=%d", status)
            return []
        return [m.get("name", "") for m in data.get("models", []) if m.get("name")]

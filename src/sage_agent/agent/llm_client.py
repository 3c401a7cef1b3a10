"""
Completion-service clients for Sage.

This module is the only place that *directly* calls an LLM.  Everything else (decomposer,
selector, synthesizer) talks to a :class:`BaseLLMClient` and stays model-agnostic.

We support these back-ends out of the box:

1. **Atoma** through its OpenAI-compatible REST API (the default).
2. **OpenAI / Anthropic** via their REST APIs (requires env keys).
3. **Hugging Face Text-Generation-Inference (TGI)** for self-hosted models.

Additional providers can be added by subclassing :class:`BaseLLMClient` and registering via
:func:`register_llm_client`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Tuple,
    Type,
    TypedDict,
)

import httpx

from sage_agent.config import settings
from sage_agent.core.errors import LLMError

logger = logging.getLogger(__name__)


class ChatMessage(TypedDict):
    """One chat message sent to the completion service."""

    role: str
    content: str


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_LLM_CLIENT_REGISTRY: dict[str, Type["BaseLLMClient"]] = {}


def register_llm_client(name: str) -> Callable:
    """Decorator to register an LLM client class under *name*."""

    def wrapper(cls: Type["BaseLLMClient"]) -> Type["BaseLLMClient"]:
        _LLM_CLIENT_REGISTRY[name] = cls
        return cls

    return wrapper


def load_llm_client(name: str | None = None, model: str | None = None) -> "BaseLLMClient":
    """
    Factory that returns an instantiated completion client.

    Fallback order:
    1. *name* arg
    2. ``settings.LLM_PROVIDER`` env option
    3. default: ``"atoma"``
    """

    target = name or getattr(settings, "LLM_PROVIDER", "atoma")
    cls = _LLM_CLIENT_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"LLM provider '{target}' is not registered.")
    return cls(model=model)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseLLMClient(ABC):
    """Abstract completion client: ordered chat messages in, free text out."""

    default_model: str = ""

    def __init__(self, model: str | None = None) -> None:
        self.model = model or self.default_model or settings.MODEL_NAME

    @abstractmethod
    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        """
        Send *messages* and return the reply text.

        Raises
        ------
        LLMError
            If the service cannot be reached or returns an empty reply.
        """


def _require_content(provider: str, content: str | None) -> str:
    if not content:
        logger.error("%s returned empty response", provider)
        raise LLMError(f"Empty response from {provider}")
    logger.debug("%s response: %s", provider, content)
    return content


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_llm_client("openai")
class OpenAILLMClient(BaseLLMClient):
    """OpenAI chat-completions client (also used for OpenAI-compatible endpoints)."""

    provider = "OpenAI"
    default_model = "gpt-4o-mini"

    def _client_kwargs(self) -> Dict[str, Any]:
        return {"api_key": settings.OPENAI_API_KEY}

    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        import openai  # pylint: disable=import-outside-toplevel

        client = openai.AsyncOpenAI(timeout=settings.LLM_TIMEOUT, **self._client_kwargs())
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=list(messages),  # type: ignore[arg-type]
                temperature=settings.LLM_TEMPERATURE,
            )
        except openai.OpenAIError as e:
            logger.error("%s request error: %s", self.provider, str(e))
            raise LLMError(f"Error calling {self.provider}: {e}") from e
        finally:
            await client.close()

        try:
            content = resp.choices[0].message.content
        except (IndexError, AttributeError, TypeError) as e:
            logger.error("%s returned a malformed response: %s", self.provider, str(e))
            raise LLMError(f"Malformed response from {self.provider}: {e}") from e
        return _require_content(self.provider, content)


@register_llm_client("atoma")
class AtomaLLMClient(OpenAILLMClient):
    """Atoma's OpenAI-compatible chat endpoint."""

    provider = "Atoma"
    default_model = ""

    def _client_kwargs(self) -> Dict[str, Any]:
        return {"api_key": settings.ATOMA_API_KEY, "base_url": settings.ATOMA_BASE_URL}


@register_llm_client("anthropic")
class AnthropicLLMClient(BaseLLMClient):
    """Anthropic Claude-based client."""

    default_model = "claude-3-5-haiku-latest"

    @staticmethod
    def _split_system(messages: Sequence[ChatMessage]) -> Tuple[str, List[Dict[str, str]]]:
        """Anthropic takes instructions as a separate system prompt."""
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns: List[Dict[str, str]] = [
            {"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"
        ]
        return system, turns

    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        import anthropic  # pylint: disable=import-outside-toplevel

        system, turns = self._split_system(messages)
        client = anthropic.AsyncAnthropic(
            api_key=settings.ANTHROPIC_API_KEY, timeout=settings.LLM_TIMEOUT
        )
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=8192,
                system=system,
                messages=turns,  # type: ignore[arg-type]
                temperature=settings.LLM_TEMPERATURE,
            )
        except anthropic.AnthropicError as e:
            logger.error("Anthropic request error: %s", str(e))
            raise LLMError(f"Error calling Anthropic: {e}") from e
        finally:
            await client.close()

        # Handle different content block types from Anthropic API
        try:
            text = "".join(block.text for block in response.content if block.type == "text")
        except (AttributeError, TypeError) as e:
            logger.error("Anthropic returned a malformed response: %s", str(e))
            raise LLMError(f"Malformed response from Anthropic: {e}") from e
        return _require_content("Anthropic", text)


@register_llm_client("tgi")
class TGILLMClient(BaseLLMClient):
    """TGI-based client with httpx."""

    default_model = "tgi"

    def __init__(
        self, model: str | None = None, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        super().__init__(model)
        self.transport = transport

    @staticmethod
    def _render(messages: Sequence[ChatMessage]) -> str:
        parts = []
        for m in messages:
            label = "User" if m["role"] == "user" else "System"
            parts.append(f"{label}: {m['content']}")
        return "\n\n".join(parts) + "\n\nAssistant:"

    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        payload = {
            "inputs": self._render(messages),
            "parameters": {
                "max_new_tokens": 2048,
                "temperature": settings.LLM_TEMPERATURE,
                "stop": ["User:", "</s>"],
            },
        }

        try:
            async with httpx.AsyncClient(
                timeout=settings.LLM_TIMEOUT, transport=self.transport
            ) as client:
                resp = await client.post(settings.TGI_ENDPOINT, json=payload)
                resp.raise_for_status()
                content = resp.json()["generated_text"]
        except httpx.HTTPError as e:
            logger.error("TGI request error: %s", str(e))
            raise LLMError(f"Error calling TGI endpoint: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            logger.error("TGI response error: %s", str(e))
            raise LLMError(f"Error processing TGI response: {e}") from e

        return _require_content("TGI", content)

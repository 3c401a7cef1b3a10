"""Tests for the completion-service clients, run against in-process HTTP transports."""

import json
from typing import Any

import httpx
import pytest

from sage_agent.agent.llm_client import (
    AnthropicLLMClient,
    AtomaLLMClient,
    TGILLMClient,
    load_llm_client,
)
from sage_agent.config import settings
from sage_agent.core.errors import LLMError

MESSAGES = [
    {"role": "system", "content": "You are Atoma Sage."},
    {"role": "user", "content": "price of SUI"},
]


def completion(choices: list) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "m",
        "choices": choices,
    }


class MockedAtoma(AtomaLLMClient):
    """Atoma client whose HTTP traffic is answered in-process."""

    def __init__(self, body: Any) -> None:
        super().__init__(model="m")
        self.body = body
        self.requests: list = []

    def _client_kwargs(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(200, json=self.body)

        return {
            "api_key": "k",
            "base_url": "http://atoma.test/v1",
            "http_client": httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        }


def test_registered_providers() -> None:
    """Every built-in back-end is reachable by name."""
    assert isinstance(load_llm_client("atoma"), AtomaLLMClient)
    assert isinstance(load_llm_client("TGI"), TGILLMClient)
    assert isinstance(load_llm_client("anthropic", model="claude"), AnthropicLLMClient)
    assert load_llm_client("anthropic", model="claude").model == "claude"


def test_unknown_provider() -> None:
    """Typos in the provider name fail loudly."""
    with pytest.raises(ValueError, match="not registered"):
        load_llm_client("gemini")


def test_atoma_uses_configured_endpoint() -> None:
    """Atoma requests go to the configured OpenAI-compatible base URL."""
    kwargs = AtomaLLMClient()._client_kwargs()
    assert kwargs["base_url"] == settings.ATOMA_BASE_URL
    assert kwargs["api_key"] == settings.ATOMA_API_KEY


@pytest.mark.asyncio
async def test_atoma_returns_reply_text() -> None:
    """The first choice's content is the reply."""
    llm = MockedAtoma(
        completion(
            [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": "SUI trades at 1.5 USD"},
                    "finish_reason": "stop",
                }
            ]
        )
    )
    assert await llm.chat(MESSAGES) == "SUI trades at 1.5 USD"

    sent = json.loads(llm.requests[0].content)
    assert sent["model"] == "m"
    assert sent["messages"] == MESSAGES
    assert str(llm.requests[0].url) == "http://atoma.test/v1/chat/completions"


@pytest.mark.asyncio
async def test_reply_without_choices_is_llm_error() -> None:
    """A completion with no choices is reported as a service failure."""
    with pytest.raises(LLMError, match="Malformed response from Atoma"):
        await MockedAtoma(completion([])).chat(MESSAGES)


@pytest.mark.asyncio
async def test_empty_content_is_llm_error() -> None:
    """A choice with no text is an empty reply."""
    body = completion(
        [{"index": 0, "message": {"role": "assistant", "content": ""}, "finish_reason": "stop"}]
    )
    with pytest.raises(LLMError, match="Empty response from Atoma"):
        await MockedAtoma(body).chat(MESSAGES)


def test_anthropic_folds_system_messages() -> None:
    """Instructions become the system prompt; the rest stay as turns."""
    system, turns = AnthropicLLMClient._split_system(
        [
            {"role": "system", "content": "a"},
            {"role": "user", "content": "q"},
            {"role": "system", "content": "b"},
            {"role": "assistant", "content": "r"},
        ]
    )
    assert system == "a\n\nb"
    assert turns == [{"role": "user", "content": "q"}, {"role": "assistant", "content": "r"}]


def test_tgi_prompt_rendering() -> None:
    """Messages are flattened into one labelled prompt ending on the assistant's turn."""
    assert TGILLMClient._render(MESSAGES) == (
        "System: You are Atoma Sage.\n\nUser: price of SUI\n\nAssistant:"
    )


@pytest.mark.asyncio
async def test_tgi_generate() -> None:
    """The rendered prompt is posted and ``generated_text`` comes back."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"generated_text": "hi"})

    llm = TGILLMClient(transport=httpx.MockTransport(handler))
    assert await llm.chat(MESSAGES) == "hi"

    assert str(seen[0].url) == settings.TGI_ENDPOINT
    payload = json.loads(seen[0].content)
    assert payload["inputs"].endswith("Assistant:")
    assert payload["parameters"]["stop"] == ["User:", "</s>"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="overloaded"),
        httpx.Response(200, json={"error": "model loading"}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_tgi_failures_are_llm_errors(response: httpx.Response) -> None:
    """Server errors and unexpected bodies never escape as raw exceptions."""
    llm = TGILLMClient(transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(LLMError):
        await llm.chat(MESSAGES)

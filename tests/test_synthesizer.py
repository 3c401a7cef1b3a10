"""Tests for final answer synthesis."""

import pytest

from sage_agent.agent.synthesizer import (
    PARSE_FAILURE_REASONING,
    PARSE_FAILURE_RESPONSE,
    ResponseSynthesizer,
    to_answer_items,
)
from sage_agent.core.errors import LLMError

from conftest import (
    ScriptedLLM,
    answer,
)


@pytest.mark.asyncio
async def test_well_formed_answer_passes_through() -> None:
    """A valid reply becomes the answer list unchanged."""
    llm = ScriptedLLM(answer("price of SUI", response="SUI trades at 1.5 USD"))
    result = await ResponseSynthesizer(llm).synthesize(
        "price of SUI", '[{"price": 1.5}]', ["get_coin_price"]
    )
    assert result == answer("price of SUI", response="SUI trades at 1.5 USD")


@pytest.mark.asyncio
async def test_prompt_carries_aggregate_tools_and_notes() -> None:
    """The model sees the raw output, the tools used and any notes."""
    llm = ScriptedLLM(answer("q"))
    await ResponseSynthesizer(llm, agent_name="Atoma Sage").synthesize(
        "q", "RAW-OUTPUT", ["stake_sui"], ["What is Sui?: A layer 1 blockchain."]
    )
    system, user = llm.calls[0]
    assert "This is the raw response: RAW-OUTPUT" in system["content"]
    assert "stake_sui tools were used." in system["content"]
    assert "- What is Sui?: A layer 1 blockchain." in system["content"]
    assert "Atoma Sage" in system["content"]
    assert user == {"role": "user", "content": "q"}


@pytest.mark.asyncio
async def test_stray_backslash_reply_is_recovered() -> None:
    """Invalid escapes are repaired rather than failing the request."""
    reply = (
        '[{"reasoning": "r", "response": "Saved to C:\\Reports", "status": "success", '
        '"query": "q", "errors": []}]'
    )
    result = await ResponseSynthesizer(ScriptedLLM(reply)).synthesize("q", "raw")
    assert result[0]["status"] == "success"
    assert result[0]["response"] == "Saved to C:\\Reports"


@pytest.mark.asyncio
async def test_unparseable_reply_becomes_failure_answer() -> None:
    """Prose with no JSON yields the fallback failure item."""
    result = await ResponseSynthesizer(ScriptedLLM("I could not do that.")).synthesize("q", "raw")
    assert len(result) == 1
    item = result[0]
    assert item["reasoning"] == PARSE_FAILURE_REASONING
    assert item["response"] == PARSE_FAILURE_RESPONSE
    assert item["status"] == "failure"
    assert item["query"] == "q"
    assert "Failed to parse JSON" in item["errors"][0]


@pytest.mark.asyncio
async def test_llm_failure_is_not_raised() -> None:
    """A completion error still produces an answer list."""
    llm = ScriptedLLM(LLMError("service unavailable"))
    result = await ResponseSynthesizer(llm).synthesize("q", "raw")
    assert result[0]["status"] == "failure"
    assert result[0]["reasoning"] == "language model request failed"
    assert result[0]["errors"] == ["service unavailable"]


def test_missing_fields_are_defaulted() -> None:
    """A bare object is wrapped and gets the user's query."""
    items = to_answer_items({"response": "hi", "status": "ok", "errors": "boom"}, "hello")
    assert items == [
        {
            "reasoning": "",
            "response": "hi",
            "status": "failure",
            "query": "hello",
            "errors": ["boom"],
        }
    ]


def test_non_object_entries_are_rejected() -> None:
    """Arrays of strings are not answers."""
    with pytest.raises(ValueError):
        to_answer_items(["just text"], "q")
    with pytest.raises(ValueError):
        to_answer_items([], "q")


@pytest.mark.asyncio
async def test_unexpected_client_error_becomes_failure_answer() -> None:
    """Errors outside the pipeline's hierarchy are still reported as an answer."""
    llm = ScriptedLLM(IndexError("list index out of range"))
    result = await ResponseSynthesizer(llm).synthesize("q", "raw")
    assert result[0]["status"] == "failure"
    assert result[0]["reasoning"] == "language model request failed"
    assert result[0]["errors"] == ["list index out of range"]


@pytest.mark.asyncio
async def test_backslash_u_in_path_is_recovered() -> None:
    """A Windows path starting with u does not sink the whole answer."""
    reply = (
        '[{"reasoning": "r", "response": "Saved to C:\\users\\sage", "status": "success", '
        '"query": "q", "errors": []}]'
    )
    result = await ResponseSynthesizer(ScriptedLLM(reply)).synthesize("q", "raw")
    assert result[0]["status"] == "success"
    assert result[0]["response"] == "Saved to C:\\users\\sage"


def test_null_text_fields_are_defaulted() -> None:
    """Explicit nulls for reasoning and query are treated as missing."""
    items = to_answer_items(
        {"reasoning": None, "query": None, "response": "ok", "status": "success"}, "q"
    )
    assert items[0]["reasoning"] == ""
    assert items[0]["query"] == "q"
    assert items[0]["response"] == "ok"

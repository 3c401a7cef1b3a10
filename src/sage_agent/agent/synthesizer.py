"""Turn aggregated raw tool output into the final structured answer."""

import logging
from typing import (
    Any,
    Dict,
    List,
    Sequence,
)

from pydantic import ValidationError

from sage_agent.agent.json_repair import (
    SYNTHESIS_STRATEGIES,
    JSONRepairError,
    ParseOutcome,
    parse_with_strategies,
)
from sage_agent.agent.llm_client import BaseLLMClient
from sage_agent.agent.prompts import synthesizer_prompt
from sage_agent.config import settings
from sage_agent.core.errors import (
    LLMError,
    SageError,
)
from sage_agent.core.schema import AnswerItem

logger = logging.getLogger(__name__)

PARSE_FAILURE_REASONING = "Error parsing the response from the agent."
PARSE_FAILURE_RESPONSE = (
    "Sorry, I encountered an error while processing your request. Please try again."
)


def failure_answer(
    query: str, error: str, reasoning: str = PARSE_FAILURE_REASONING
) -> Dict[str, Any]:
    """The single answer item returned when synthesis cannot produce one."""
    return AnswerItem(
        reasoning=reasoning,
        response=PARSE_FAILURE_RESPONSE,
        status="failure",
        query=query,
        errors=[error],
    ).to_dict()


def to_answer_items(parsed: Any, query: str) -> List[Dict[str, Any]]:
    """
    Validate decoded model output into answer items.

    A single object is wrapped in a list; a missing or null ``query`` defaults to *query*.

    Raises
    ------
    ValueError
        If the value is not an object or a non-empty list of objects.
    """
    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list) or not parsed:
        raise ValueError("expected a non-empty JSON array of answer objects")

    items = []
    for entry in parsed:
        if not isinstance(entry, dict):
            raise ValueError(f"answer entry is not an object: {entry!r}")
        entry = dict(entry)
        if not entry.get("query"):
            entry["query"] = query
        try:
            items.append(AnswerItem.model_validate(entry).to_dict())
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc
    return items


class ResponseSynthesizer:
    """Builds the final answer through one more model round trip.  Never raises."""

    def __init__(self, llm: BaseLLMClient, agent_name: str | None = None) -> None:
        self.llm = llm
        self.agent_name = agent_name or settings.AGENT_NAME

    async def synthesize(
        self,
        query: str,
        aggregate: str,
        tools_used: Sequence[str] = (),
        notes: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        prompt = synthesizer_prompt(
            query, aggregate, list(tools_used), self.agent_name, list(notes)
        )
        try:
            content = await self.llm.chat(
                [
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": query},
                ]
            )
        except SageError as exc:
            logger.error("Synthesis request failed: %s", exc)
            return [failure_answer(query, str(exc), reasoning=exc.reasoning)]
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error from completion client during synthesis")
            return [failure_answer(query, str(exc) or type(exc).__name__, LLMError.reasoning)]

        return self.parse(content, query)

    @staticmethod
    def parse(content: str, query: str) -> List[Dict[str, Any]]:
        """Run the parsing strategies over *content*; fall back to a failure answer."""
        try:
            outcome: ParseOutcome = parse_with_strategies(content, SYNTHESIS_STRATEGIES)
            items = to_answer_items(outcome.value, query)
        except (JSONRepairError, ValueError) as exc:
            logger.error("Error parsing final answer JSON: %s", exc)
            logger.debug("Raw response that failed parsing: %s", content)
            return [failure_answer(query, str(exc))]

        logger.debug("Final answer parsed with %s", outcome.strategy)
        return items

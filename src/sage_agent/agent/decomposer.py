"""Split a user query into ordered, self-contained subqueries."""

import json
import logging
from typing import List

from sage_agent.agent.llm_client import BaseLLMClient
from sage_agent.agent.prompts import decomposer_prompt
from sage_agent.core.errors import DecompositionError

logger = logging.getLogger(__name__)


class QueryDecomposer:
    """Asks the model whether a query needs splitting and returns the subqueries in order."""

    def __init__(self, llm: BaseLLMClient) -> None:
        self.llm = llm

    async def decompose(self, query: str) -> List[str]:
        """
        Return the subqueries for *query*; ``[query]`` when no split is needed.

        The reply must be valid JSON.  No repair is attempted here: a garbled decomposition
        would silently change what gets executed.

        Raises
        ------
        DecompositionError
            If the reply is not JSON or not an array of strings.
        LLMError
            If the completion service fails.
        """
        content = await self.llm.chat(
            [
                {"role": "system", "content": decomposer_prompt()},
                {"role": "user", "content": query},
            ]
        )
        logger.debug("Decomposer reply: %s", content)

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise DecompositionError(f"Decomposer returned invalid JSON: {exc}") from exc

        if isinstance(parsed, str):
            parsed = [parsed]
        if not isinstance(parsed, list):
            raise DecompositionError(
                f"Decomposer returned {type(parsed).__name__}, expected an array of strings"
            )

        subqueries = [item if isinstance(item, str) else json.dumps(item) for item in parsed]
        subqueries = [s.strip() for s in subqueries if s.strip()]
        if not subqueries:
            logger.info("Decomposer returned no subqueries, using the original query")
            return [query]

        logger.info("Decomposed query into %d subqueries", len(subqueries))
        return subqueries

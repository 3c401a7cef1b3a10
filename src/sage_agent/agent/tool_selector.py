"""Ask the model to plan each subquery: answer directly, call tools, or ask for more info."""

import logging
from typing import (
    List,
    Sequence,
)

from pydantic import ValidationError

from sage_agent.agent.json_repair import (
    SELECTION_STRATEGIES,
    JSONRepairError,
    parse_with_strategies,
)
from sage_agent.agent.llm_client import BaseLLMClient
from sage_agent.agent.prompts import selector_prompt
from sage_agent.config import settings
from sage_agent.core.errors import SelectionError
from sage_agent.core.schema import (
    PlannedSubquery,
    PlanRejection,
    SubqueryPlan,
)
from sage_agent.tools import ToolRegistry

logger = logging.getLogger(__name__)


def format_subqueries(subqueries: Sequence[str]) -> str:
    """Concatenate the subqueries into the user message of the selection request."""
    if len(subqueries) == 1:
        return subqueries[0]
    return "\n".join(f"{i}. {subquery}" for i, subquery in enumerate(subqueries, start=1))


class ToolSelector:
    """Produces one :class:`SubqueryPlan` (or :class:`PlanRejection`) per selector entry."""

    def __init__(
        self, llm: BaseLLMClient, registry: ToolRegistry, agent_name: str | None = None
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.agent_name = agent_name or settings.AGENT_NAME

    async def select(
        self, subqueries: Sequence[str], address: str | None = None
    ) -> List[PlannedSubquery]:
        """
        Plan every subquery.

        Raises
        ------
        SelectionError
            If the reply cannot be parsed, is empty, or contains no valid plan.
        LLMError
            If the completion service fails.
        """
        prompt = selector_prompt(self.registry.describe(), self.agent_name, address)
        content = await self.llm.chat(
            [
                {"role": "system", "content": prompt},
                {"role": "user", "content": format_subqueries(subqueries)},
            ]
        )
        logger.debug("Selector reply: %s", content)

        try:
            parsed = parse_with_strategies(content, SELECTION_STRATEGIES).value
        except JSONRepairError as exc:
            raise SelectionError(str(exc)) from exc

        return self.parse_plans(parsed)

    @staticmethod
    def parse_plans(parsed: object) -> List[PlannedSubquery]:
        """
        Validate decoded selector output into plans.

        An entry that is not a valid plan becomes a :class:`PlanRejection` in its place, so the
        other subqueries still run.  Only a reply with no valid plan at all is a selection error.
        """
        if isinstance(parsed, dict):
            parsed = [parsed]
        if not isinstance(parsed, list) or not parsed:
            raise SelectionError("Selector did not return a non-empty JSON array of plans")

        plans: List[PlannedSubquery] = []
        for index, item in enumerate(parsed):
            if not isinstance(item, dict):
                plans.append(PlanRejection(error=f"Plan {index} is not an object: {item!r}"))
                continue
            try:
                plans.append(SubqueryPlan.model_validate(item))
            except ValidationError as exc:
                subquery = item.get("subquery")
                plans.append(
                    PlanRejection(
                        subquery=subquery if isinstance(subquery, str) else "",
                        error=f"Invalid plan {index}: {exc}",
                    )
                )

        rejected = [plan for plan in plans if isinstance(plan, PlanRejection)]
        for rejection in rejected:
            logger.warning("Rejected plan for %r: %s", rejection.subquery, rejection.error)
        if len(rejected) == len(plans):
            raise SelectionError(rejected[0].error)

        logger.info(
            "Selector planned %d subqueries: %s", len(plans), [plan.kind.value for plan in plans]
        )
        return plans

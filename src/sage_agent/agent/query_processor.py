"""Execute the selector's plans in order and aggregate raw tool output."""

import json
import logging
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Any,
    List,
    Sequence,
)

from sage_agent.agent.tool_executor import ToolExecutor
from sage_agent.core.context import (
    ANONYMOUS,
    CallerContext,
)
from sage_agent.core.errors import (
    SageError,
    SelectionError,
    handle_error,
)
from sage_agent.core.schema import (
    PlanKind,
    PlannedSubquery,
    SubqueryPlan,
)

logger = logging.getLogger(__name__)

NO_TOOLS_SELECTED = "No tools selected for the query"
NO_TOOLS_EXECUTED = "No valid tools were executed for the query"


@dataclass
class ProcessingResult:
    """What the processor hands to the synthesizer."""

    aggregate: str
    tools_used: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    failures: int = 0


def split_arguments(plan: SubqueryPlan) -> List[List[Any]]:
    """
    Return one token list per selected tool.

    With several tools and a list of lists of matching length, each tool gets its own list.
    Otherwise every tool sees the plan's whole token list.
    """
    tools = plan.selected_tools or []
    args = plan.tool_arguments or []
    if len(tools) > 1 and len(args) == len(tools) and all(isinstance(a, list) for a in args):
        return [list(a) for a in args]
    return [list(args) for _ in tools]


class QueryProcessor:
    """
    Runs tool plans one after another.

    Plans execute sequentially: a later subquery may depend on ledger state changed by an
    earlier one (stake, then supply the staking receipt).  A failure in one tool, or a plan the
    selector got wrong, is recorded in the aggregate and does not stop the remaining plans.
    """

    def __init__(self, executor: ToolExecutor) -> None:
        self.executor = executor

    async def process(
        self, plans: Sequence[PlannedSubquery], context: CallerContext = ANONYMOUS
    ) -> ProcessingResult:
        if not plans:
            return ProcessingResult(aggregate=NO_TOOLS_SELECTED)

        outputs: List[str] = []
        result = ProcessingResult(aggregate="")

        for plan in plans:
            if plan.kind is PlanKind.REJECTED:
                logger.warning("Skipping rejected plan for %r", plan.subquery)
                result.failures += 1
                error = SelectionError(plan.error)
                outputs.append(json.dumps([handle_error(error, None, plan.subquery)]))
                continue
            if plan.kind is PlanKind.DIRECT:
                result.notes.append(f"{plan.subquery}: {plan.direct_response}")
                continue
            if plan.kind is PlanKind.NEEDS_INFO:
                missing = ", ".join(plan.missing_info or []) or "unspecified details"
                result.notes.append(f"{plan.subquery}: needs additional information ({missing})")
                continue

            for tool_name, tokens in zip(plan.selected_tools or [], split_arguments(plan)):
                result.tools_used.append(tool_name)
                outputs.append(await self._run(tool_name, tokens, context, plan.subquery, result))

        result.aggregate = "\n".join(outputs).strip() or NO_TOOLS_EXECUTED
        return result

    async def _run(
        self,
        tool_name: str,
        tokens: List[Any],
        context: CallerContext,
        subquery: str,
        result: ProcessingResult,
    ) -> str:
        try:
            return await self.executor.execute(tool_name, tokens, context)
        except SageError as exc:
            logger.warning("Tool '%s' failed for %r: %s", tool_name, subquery, exc)
            result.failures += 1
            return json.dumps([handle_error(exc, None, subquery)])

"""
Main orchestration pipeline for Sage.

    query -> QueryDecomposer -> ToolSelector -> QueryProcessor -> ResponseSynthesizer -> answer

:meth:`Agent.process_user_query_pipeline` is the only public entry point.  It always returns a
list of answer dicts and never raises: stage failures come back as a ``StructuredError`` item.
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Dict,
    List,
)

from sage_agent.agent.argument_resolver import ArgumentResolver
from sage_agent.agent.decomposer import QueryDecomposer
from sage_agent.agent.llm_client import (
    BaseLLMClient,
    load_llm_client,
)
from sage_agent.agent.query_processor import QueryProcessor
from sage_agent.agent.synthesizer import ResponseSynthesizer
from sage_agent.agent.tool_executor import ToolExecutor
from sage_agent.agent.tool_selector import ToolSelector
from sage_agent.config import settings
from sage_agent.core.context import (
    ANONYMOUS,
    CallerContext,
)
from sage_agent.core.errors import (
    SageError,
    handle_error,
)
from sage_agent.core.schema import AnswerItem
from sage_agent.tools import (
    ToolRegistry,
    load_tool_modules,
)

logger = logging.getLogger(__name__)

PING_QUERY = "ping"


def ping_answer(context: CallerContext) -> List[Dict[str, Any]]:
    """Fixed reply to a connectivity check; no model round trip."""
    return [
        AnswerItem(
            reasoning="Connection check",
            response={"message": "Connection successful", "address": context.address},
            status="success",
            query=PING_QUERY,
        ).to_dict()
    ]


class Agent:
    """
    Composes the pipeline stages around one tool registry and one completion client.

    The agent holds no caller identity: the wallet address and signing key of each request
    travel in the :class:`CallerContext` passed to :meth:`process_user_query_pipeline`, so one
    agent can serve concurrent requests from different users.
    """

    def __init__(
        self,
        llm: BaseLLMClient,
        registry: ToolRegistry,
        agent_name: str | None = None,
        tool_timeout: float | None = None,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.decomposer = QueryDecomposer(llm)
        self.selector = ToolSelector(llm, registry, agent_name)
        executor = ToolExecutor(
            registry,
            ArgumentResolver(),
            timeout=settings.TOOL_TIMEOUT if tool_timeout is None else tool_timeout,
        )
        self.processor = QueryProcessor(executor)
        self.synthesizer = ResponseSynthesizer(llm, agent_name)

    @classmethod
    def from_settings(cls, registry: ToolRegistry | None = None) -> "Agent":
        """Build an agent from ``settings``: LLM provider plus the configured tool modules."""
        if registry is None:
            registry = ToolRegistry()
            load_tool_modules(registry, settings.TOOL_MODULES)
        llm = load_llm_client(settings.LLM_PROVIDER)
        logger.info(
            "Agent ready: provider=%s model=%s tools=%d",
            settings.LLM_PROVIDER,
            llm.model,
            len(registry),
        )
        return cls(llm, registry, settings.AGENT_NAME)

    async def process_user_query_pipeline(
        self, query: str, context: CallerContext | None = None
    ) -> List[Dict[str, Any]]:
        """
        Process *query* from start to finish.

        Parameters
        ----------
        query:
            The user's free-text request.
        context:
            The caller the tools act for.  Defaults to an anonymous caller (tools needing a
            wallet will then report "wallet not connected").

        Returns
        -------
        List[Dict[str, Any]]
            Answer items ``{"reasoning", "response", "status", "query", "errors"}``.
        """
        context = context or ANONYMOUS
        query = query.strip()

        if query.lower() == PING_QUERY:
            return ping_answer(context)

        try:
            return await self._run(query, context)
        except SageError as exc:
            logger.error("Pipeline aborted for %r: %s", query, exc)
            return [handle_error(exc, None, query)]
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error while processing %r", query)
            return [handle_error(exc, None, query)]

    async def _run(self, query: str, context: CallerContext) -> List[Dict[str, Any]]:
        subqueries = await self.decomposer.decompose(query)
        logger.info("Subqueries: %s", subqueries)
        plans = await self.selector.select(subqueries, context.address)

        processed = await self.processor.process(plans, context)
        logger.info(
            "Executed %d tools (%d failed)", len(processed.tools_used), processed.failures
        )

        answer = await self.synthesizer.synthesize(
            query, processed.aggregate, processed.tools_used, processed.notes
        )
        logger.debug("Final answer: %s", answer)
        return answer

"""Dispatches tool calls registered in a :class:`ToolRegistry` and wraps errors."""

import asyncio
import inspect
import json
import logging
from typing import (
    Any,
    Sequence,
)

from sage_agent.agent.argument_resolver import ArgumentResolver
from sage_agent.config import settings
from sage_agent.core.context import (
    ANONYMOUS,
    CallerContext,
)
from sage_agent.core.errors import (
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from sage_agent.tools import ToolRegistry

logger = logging.getLogger(__name__)

_DEFAULT = object()


class ToolExecutor:
    """
    Looks up a tool, resolves its arguments and awaits its handler.

    Failures are never retried: tools may move funds on a shared ledger and are not known to be
    idempotent.

    Both coroutine and plain handlers are bounded by *timeout*.  A plain handler that times out
    is abandoned, not stopped: its worker thread runs to completion in the background.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        resolver: ArgumentResolver | None = None,
        timeout: float | None | object = _DEFAULT,
    ) -> None:
        self.registry = registry
        self.resolver = resolver or ArgumentResolver()
        self.timeout = settings.TOOL_TIMEOUT if timeout is _DEFAULT else timeout

    async def execute(
        self,
        tool_name: str,
        raw_arguments: Sequence[Any] | None = None,
        context: CallerContext = ANONYMOUS,
    ) -> str:
        """
        Look up *tool_name* in the registry and invoke it with *raw_arguments*.

        Parameters
        ----------
        tool_name:
            The registered tool name (surrounding whitespace is ignored).
        raw_arguments:
            Argument tokens exactly as the selector produced them.
        context:
            The caller the tool acts for.

        Returns
        -------
        str
            The handler's raw output.  Non-string results are JSON-encoded.

        Raises
        ------
        ToolNotFoundError
            If no tool is registered under *tool_name*.
        ResolutionError, CallerContextError
            If the arguments cannot be bound.
        ToolExecutionError
            If the handler raises or times out.
        """
        tool = self.registry.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(tool_name.strip())

        args = self.resolver.resolve(tool, raw_arguments, context)

        try:
            logger.debug("Executing tool '%s' with %d args", tool.name, len(args))
            if inspect.iscoroutinefunction(tool.handler):
                pending = tool.handler(*args)
            else:
                # Blocking handlers run in a worker thread so the timeout still applies
                pending = asyncio.to_thread(tool.handler, *args)
            result = await asyncio.wait_for(pending, timeout=self.timeout)
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Tool '%s' timed out after %ss", tool.name, self.timeout)
            raise ToolTimeoutError(
                f"Tool '{tool.name}' timed out after {self.timeout} seconds"
            ) from exc
        except TypeError as exc:
            # Argument mismatch: surface a clean exception to the caller
            logger.exception("Argument error while executing tool '%s'", tool.name)
            raise ToolExecutionError(f"Invalid arguments for tool '{tool.name}': {exc}") from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error in tool '%s'", tool.name)
            raise ToolExecutionError(f"Tool '{tool.name}' raised an error: {exc}") from exc

        if not isinstance(result, str):
            result = json.dumps(result, default=str)
        logger.debug("Tool '%s' returned: %s", tool.name, result)
        return result

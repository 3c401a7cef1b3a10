"""
Error taxonomy for the Sage pipeline.

Every stage raises a subclass of :class:`SageError`.  The exceptions never leave the package:
component boundaries that face the caller turn them into the single ``StructuredError`` shape via
:func:`handle_error`, which stamps a correlation id into the message so a failure shown to a user
can be found again in the logs.
"""

import logging
import uuid
from typing import (
    Any,
    Dict,
)

logger = logging.getLogger(__name__)

FAILURE_RESPONSE = "Operation unsuccessful"


class SageError(RuntimeError):
    """Base class for all pipeline errors."""

    reasoning = "The system encountered an issue while processing your query"


class LLMError(SageError):
    """Raised when the completion service cannot be reached or returns nothing."""

    reasoning = "language model request failed"


class DecompositionError(SageError):
    """Raised when the decomposer reply is not a usable JSON array."""

    reasoning = "decomposition failed"


class SelectionError(SageError):
    """Raised when the tool selector reply cannot be turned into valid plans."""

    reasoning = "tool selection failed"


class ResolutionError(SageError):
    """Raised when raw argument tokens cannot be bound to a tool's parameters."""

    reasoning = "argument resolution failed"


class MissingParameterError(ResolutionError):
    """Raised when a required parameter has no value after binding."""

    def __init__(self, tool_name: str, parameter: str) -> None:
        super().__init__(f"Missing required parameter '{parameter}' for tool '{tool_name}'")
        self.tool_name = tool_name
        self.parameter = parameter


class CallerContextError(SageError):
    """Raised when a tool needs the caller's wallet but none was supplied."""

    reasoning = "wallet not connected"


class InvalidCredentialError(CallerContextError):
    """Raised when a signing key cannot be decoded or does not own the supplied address."""

    reasoning = "invalid wallet credentials"


class ToolExecutionError(SageError):
    """Raised when a requested tool cannot run or fails."""

    reasoning = "tool execution failed"


class ToolNotFoundError(ToolExecutionError):
    """Raised when the selected tool is not in the registry."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool '{tool_name}' not found")
        self.tool_name = tool_name


class ToolTimeoutError(ToolExecutionError):
    """Raised when a tool handler exceeds the configured timeout."""


def new_error_id() -> str:
    """Return a fresh correlation id for one failure."""
    return str(uuid.uuid4())


def handle_error(error: BaseException | str, reasoning: str | None, query: str) -> Dict[str, Any]:
    """
    Convert *error* into a ``StructuredError`` mapping.

    Parameters
    ----------
    error:
        The exception (or a plain message) being reported.
    reasoning:
        Human-readable stage description.  Falls back to the exception's class-level
        ``reasoning`` when *None*.
    query:
        The query (or subquery) that was being processed.

    Returns
    -------
    Dict[str, Any]
        ``{"reasoning", "response", "status": "failure", "query", "errors"}``
    """
    error_id = new_error_id()
    if isinstance(error, BaseException):
        message = str(error) or error.__class__.__name__
        if reasoning is None:
            reasoning = getattr(error, "reasoning", SageError.reasoning)
    else:
        message = error or "Unknown error occurred"
        reasoning = reasoning or SageError.reasoning

    logger.debug("Structured error %s: %s", error_id, message)
    return {
        "reasoning": reasoning,
        "response": FAILURE_RESPONSE,
        "status": "failure",
        "query": query,
        "errors": [f"Error ID: {error_id} - {message}"],
    }

"""
Tool registry for Sage.

This module provides the :class:`ToolRegistry` that maps a tool name to its description, its
ordered parameter schema and its handler, plus the helpers tool plugins use to register
themselves and to format their results.

Tools are callables invoked with *positional* arguments in the order of their parameter schema.
They return a JSON-encoded single-element list shaped like the final answer, so that raw tool
output can be aggregated uniformly.
"""

import importlib
import json
import logging
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Sequence,
    Union,
)

from sage_agent.core.errors import handle_error
from sage_agent.core.schema import ToolParameter

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Union[Awaitable[Any], Any]]
ParameterSpec = Union[ToolParameter, Mapping[str, Any]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A registered tool: name, description, ordered parameters and handler."""

    name: str
    description: str
    parameters: List[ToolParameter] = field(default_factory=list)
    handler: ToolHandler = field(default=lambda *args: "", repr=False, compare=False)

    @property
    def parameter_names(self) -> List[str]:
        """Declared parameter names, in positional order."""
        return [p.name for p in self.parameters]

    def describe(self) -> Dict[str, Any]:
        """JSON-ready description used when building prompts."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [p.model_dump() for p in self.parameters],
        }


class ToolRegistry:
    """
    Write-once, read-many catalog of tools.

    Registration order is preserved.  Names must be unique: registering a name twice raises
    ``ValueError`` instead of silently replacing the first tool.  There is no removal operation.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip() in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def register(
        self,
        name: str,
        description: str,
        parameters: Sequence[ParameterSpec],
        handler: ToolHandler,
    ) -> ToolDescriptor:
        """
        Register a tool.

        Parameters
        ----------
        name: str
            Unique tool name the selector refers to.
        description: str
            What the tool does; shown verbatim to the language model.
        parameters: Sequence
            Ordered parameter schema, as :class:`ToolParameter` objects or plain mappings with
            ``name``, ``type``, ``description`` and ``required`` keys.
        handler: Callable
            Called with positional arguments; may be a coroutine function.

        Returns
        -------
        ToolDescriptor
            The stored descriptor.

        Raises
        ------
        ValueError
            If a tool with the same name is already registered.
        """
        name = name.strip()
        if not name:
            raise ValueError("Tool name must not be empty.")
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered.")

        params = [p if isinstance(p, ToolParameter) else ToolParameter(**p) for p in parameters]
        descriptor = ToolDescriptor(
            name=name, description=description, parameters=params, handler=handler
        )
        self._tools[name] = descriptor
        logger.debug("Registering tool '%s' (%d parameters)", name, len(params))
        return descriptor

    def register_tool(
        self, name: str, description: str, parameters: Sequence[ParameterSpec] = ()
    ) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator form of :meth:`register`.

            @registry.register_tool("get_coin_price", "Current price of a coin", [...])
            async def get_coin_price(coin_type):
                ...
        """

        def wrapper(fn: ToolHandler) -> ToolHandler:
            self.register(name, description or (fn.__doc__ or ""), parameters, fn)
            return fn

        return wrapper

    def get(self, name: str) -> ToolDescriptor | None:
        """Look up a tool by exact (trimmed) name."""
        return self._tools.get(name.strip())

    def get_all(self) -> List[ToolDescriptor]:
        """Return the full catalog in registration order."""
        return list(self._tools.values())

    def describe(self) -> List[Dict[str, Any]]:
        """Return the catalog as JSON-ready dictionaries for prompt construction."""
        return [tool.describe() for tool in self._tools.values()]


def load_tool_modules(registry: ToolRegistry, module_paths: Iterable[str]) -> None:
    """
    Import tool plugin modules and let each one register its tools.

    Every module must expose ``register_tools(registry)``.

    Raises
    ------
    ImportError
        If a module cannot be imported.
    AttributeError
        If a module has no ``register_tools`` function.
    """
    for path in module_paths:
        module = importlib.import_module(path)
        register = getattr(module, "register_tools", None)
        if not callable(register):
            raise AttributeError(f"Tool module '{path}' does not define register_tools().")
        before = len(registry)
        register(registry)
        logger.info("Loaded %d tools from '%s'", len(registry) - before, path)


# ---------------------------------------------------------------------------
# Result envelope helpers for tool authors
# ---------------------------------------------------------------------------
def tool_result(
    response: Any,
    query: str,
    reasoning: str = "",
    status: str = "success",
    errors: List[Any] | None = None,
) -> str:
    """Encode a tool result as the single-element answer envelope."""
    return json.dumps(
        [
            {
                "reasoning": reasoning,
                "response": response,
                "status": status,
                "query": query,
                "errors": errors or [],
            }
        ],
        default=str,
    )


def tool_failure(error: BaseException | str, reasoning: str, query: str) -> str:
    """Encode a failure as the single-element answer envelope."""
    return json.dumps([handle_error(error, reasoning, query)])

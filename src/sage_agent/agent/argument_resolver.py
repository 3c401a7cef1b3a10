"""
Bind a selector's raw argument tokens to a tool's ordered parameter list.

Resolution happens in two passes:

1. Every token is classified (see :mod:`sage_agent.tools.argument_parser`) and handed to the
   resolver function for its variant, which either binds a parameter by name or appends values
   to the positional stream.
2. The tool's declared parameters are walked in order.  A parameter bound by name wins, a
   credential parameter is taken from the caller context, anything else consumes the next unused
   positional value.  A required parameter left without a value is an error.

Both passes are pure, so resolving the same tokens against the same tool twice gives the same
arguments.
"""

import logging
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Type,
)

from sage_agent.core.context import (
    ANONYMOUS,
    CallerContext,
)
from sage_agent.core.errors import MissingParameterError
from sage_agent.tools import ToolDescriptor
from sage_agent.tools.argument_parser import (
    ArgumentToken,
    EnvelopeArgument,
    JsonArgument,
    NamedArgument,
    PlaceholderArgument,
    ScalarArgument,
    coerce_value,
    is_placeholder,
    parse_tokens,
)

logger = logging.getLogger(__name__)

CREDENTIAL_PARAMETERS = frozenset({"private_key", "signer_private_key"})
_UNSET = object()


@dataclass
class _Bindings:
    """Scratch state for one resolution."""

    named: Dict[str, Any] = field(default_factory=dict)
    positional: List[Any] = field(default_factory=list)


# ---------------------------------------------------------------------------
# One resolver per token variant
# ---------------------------------------------------------------------------
def _resolve_named(token: NamedArgument, bindings: _Bindings, context: CallerContext) -> None:
    if is_placeholder(token.value):
        bindings.named[token.name] = context.require_address()
    else:
        bindings.named[token.name] = coerce_value(token.value)


def _resolve_placeholder(
    token: PlaceholderArgument, bindings: _Bindings, context: CallerContext
) -> None:
    bindings.positional.append(context.require_address())


def _resolve_envelope(token: EnvelopeArgument, bindings: _Bindings, context: CallerContext) -> None:
    logger.debug("Splicing %d args from '%s' envelope", len(token.args), token.function)
    for arg in token.args:
        bindings.positional.append(context.require_address() if is_placeholder(arg) else arg)


def _resolve_json(token: JsonArgument, bindings: _Bindings, context: CallerContext) -> None:
    bindings.positional.append(token.value)


def _resolve_scalar(token: ScalarArgument, bindings: _Bindings, context: CallerContext) -> None:
    bindings.positional.append(token.value)


_RESOLVERS: Dict[Type[Any], Callable[[Any, _Bindings, CallerContext], None]] = {
    NamedArgument: _resolve_named,
    PlaceholderArgument: _resolve_placeholder,
    EnvelopeArgument: _resolve_envelope,
    JsonArgument: _resolve_json,
    ScalarArgument: _resolve_scalar,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
class ArgumentResolver:
    """Turns raw selector tokens into the positional argument list for a tool handler."""

    def collect(
        self, tokens: Sequence[ArgumentToken], context: CallerContext = ANONYMOUS
    ) -> _Bindings:
        """First pass: route every classified token through its variant resolver."""
        bindings = _Bindings()
        for token in tokens:
            _RESOLVERS[type(token)](token, bindings, context)
        return bindings

    def bind(
        self, tool: ToolDescriptor, bindings: _Bindings, context: CallerContext = ANONYMOUS
    ) -> List[Any]:
        """Second pass: walk the declared parameters and produce positional arguments."""
        args: List[Any] = []
        next_positional = 0
        for param in tool.parameters:
            value: Any = _UNSET
            if param.name in bindings.named:
                value = bindings.named[param.name]
            elif param.name in CREDENTIAL_PARAMETERS:
                if param.required or context.private_key:
                    value = context.require_private_key()
            elif next_positional < len(bindings.positional):
                value = bindings.positional[next_positional]
                next_positional += 1

            if value is _UNSET:
                if param.required:
                    raise MissingParameterError(tool.name, param.name)
                value = None
            args.append(value)

        unused = len(bindings.positional) - next_positional
        if unused > 0:
            logger.debug("Ignoring %d surplus positional args for tool '%s'", unused, tool.name)

        # Drop trailing unset optionals so handler defaults apply.
        while args and args[-1] is None and not tool.parameters[len(args) - 1].required:
            args.pop()
        return args

    def resolve(
        self,
        tool: ToolDescriptor,
        raw_tokens: Sequence[Any] | None,
        context: CallerContext = ANONYMOUS,
    ) -> List[Any]:
        """
        Resolve *raw_tokens* for *tool*.

        Raises
        ------
        MissingParameterError
            If a required parameter gets no value.
        CallerContextError
            If a token or parameter needs the caller's wallet and *context* lacks it.
        """
        tokens = parse_tokens(list(raw_tokens or []), tool.parameter_names)
        bindings = self.collect(tokens, context)
        args = self.bind(tool, bindings, context)
        logger.debug("Resolved args for '%s': %s", tool.name, _redact(tool, args))
        return args


def _redact(tool: ToolDescriptor, args: List[Any]) -> List[Any]:
    return [
        "<redacted>" if param.name in CREDENTIAL_PARAMETERS else value
        for param, value in zip(tool.parameters, args)
    ]

"""
Classify the loosely-shaped argument tokens a language model emits for a tool call.

The selector is asked for a flat list of arguments, but models answer in several shapes:

    ["0x2::sui::SUI"]                                 bare scalars
    ["amount=500", "coin_type=0x2::sui::SUI"]         name=value pairs
    ["owner_id"]                                      a placeholder for the caller's wallet
    ['{"function": "stake", "args": ["SUI", 1]}']     a function-call envelope
    ['["0x2::sui::SUI", "0x...::usdc::USDC"]']        a JSON array meant as one argument

:func:`parse_token` turns each raw token into one of the tagged variants below.  Binding them to
parameters is the resolver's job (``sage_agent.agent.argument_resolver``).
"""

import json
import re
from dataclasses import dataclass
from typing import (
    Any,
    Collection,
    List,
    Union,
)


class ArgumentParseError(ValueError):
    """Raised when a token claims a shape it does not have."""


# ---------------------------------------------------------------------------
# Token variants
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class NamedArgument:
    """``name=value`` where *name* is a declared parameter of the tool."""

    name: str
    value: Any


@dataclass(frozen=True)
class PlaceholderArgument:
    """A symbolic reference to the caller's wallet address."""

    raw: str


@dataclass(frozen=True)
class EnvelopeArgument:
    """A ``{"function": ..., "args": [...]}`` echo whose args are spliced positionally."""

    function: str
    args: List[Any]


@dataclass(frozen=True)
class JsonArgument:
    """A JSON object or array passed through as a single positional value."""

    value: Any


@dataclass(frozen=True)
class ScalarArgument:
    """Anything else, passed positionally unchanged."""

    value: Any


ArgumentToken = Union[
    NamedArgument, PlaceholderArgument, EnvelopeArgument, JsonArgument, ScalarArgument
]


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_ADDRESS_RE = re.compile(r"^(0x)?[a-fA-F0-9]{40,64}$")
_NAMED_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$", re.DOTALL)
_PLACEHOLDER_STRIP = "<>{}[]$ '\"`"

PLACEHOLDERS = frozenset(
    {
        "owner_id",
        "owner_address",
        "sender_address",
        "sender",
        "wallet_address",
        "my_address",
        "my_wallet_address",
        "caller_address",
        "user_address",
        "your_address",
    }
)


def _normalise_placeholder(text: str) -> str:
    return re.sub(r"[\s\-]+", "_", text.strip().strip(_PLACEHOLDER_STRIP).lower())


def is_placeholder(value: Any) -> bool:
    """Return True when *value* names the caller's wallet rather than a concrete value."""
    return isinstance(value, str) and _normalise_placeholder(value) in PLACEHOLDERS


def coerce_value(value: str) -> Any:
    """
    Best-effort type sniffing for the value half of a ``name=value`` token.

    Integers and decimals become numbers, ``true``/``false`` become booleans, 40-64 hex
    characters become a ``0x``-prefixed address; everything else stays a string.
    """
    text = value.strip()
    if _NUMBER_RE.match(text):
        return float(text) if "." in text else int(text)
    if text == "true":
        return True
    if text == "false":
        return False
    if _ADDRESS_RE.match(text):
        return text if text.startswith("0x") else f"0x{text}"
    return text


def _from_json(value: Any) -> ArgumentToken:
    if isinstance(value, dict) and "function" in value and "args" in value:
        args = value["args"]
        if not isinstance(args, list):
            raise ArgumentParseError("envelope 'args' must be a list")
        return EnvelopeArgument(function=str(value["function"]), args=list(args))
    return JsonArgument(value)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
def parse_token(token: Any, parameter_names: Collection[str]) -> ArgumentToken:
    """
    Classify one raw token.

    Precedence: named pair (only for declared *parameter_names*), placeholder, JSON
    object/array, bare scalar.  A string that looks like JSON but does not parse is treated as a
    scalar.
    """
    if isinstance(token, (dict, list)):
        try:
            return _from_json(token)
        except ArgumentParseError:
            return JsonArgument(token)

    if not isinstance(token, str):
        return ScalarArgument(token)

    match = _NAMED_RE.match(token)
    if match and match.group(1) in parameter_names and match.group(2).strip():
        return NamedArgument(name=match.group(1), value=match.group(2).strip())

    if is_placeholder(token):
        return PlaceholderArgument(token)

    stripped = token.strip()
    if stripped.startswith(("{", "[")):
        try:
            return _from_json(json.loads(stripped))
        except (json.JSONDecodeError, ArgumentParseError):
            pass

    return ScalarArgument(token)


def parse_tokens(tokens: List[Any] | None, parameter_names: Collection[str]) -> List[ArgumentToken]:
    """Classify every token of a selector ``tool_arguments`` list."""
    return [parse_token(token, parameter_names) for token in tokens or []]

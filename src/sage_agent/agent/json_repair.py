"""
Ordered JSON parsing strategies for language-model replies.

Models asked for "only JSON" still wrap it in prose, code fences or broken escapes.  Each
strategy below is a pure ``str -> Any`` function that either returns the parsed value or raises
``ValueError``.  :func:`parse_with_strategies` tries them in order and reports which one
succeeded.
"""

import json
import logging
import re
from typing import (
    Any,
    Callable,
    NamedTuple,
    Sequence,
)

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Any]

# Scanned left to right so an escaped backslash pair is consumed whole
_ESCAPE_RE = re.compile(r'\\(["\\/bfnrt]|u[0-9a-fA-F]{4})?')
_ARRAY_OF_OBJECTS_RE = re.compile(r"\[\s*\{.*\}\s*\]", re.DOTALL)
_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)


class JSONRepairError(ValueError):
    """Raised when no strategy can parse the text."""


class ParseOutcome(NamedTuple):
    """A successful parse and the name of the strategy that produced it."""

    value: Any
    strategy: str


def _double_stray_backslashes(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: m.group(0) if m.group(1) else "\\\\", text)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------
def parse_direct(text: str) -> Any:
    """(a) Plain :func:`json.loads`."""
    return json.loads(text)


def parse_normalised_escapes(text: str) -> Any:
    """
    (b) Repair escaping artifacts, then parse.

    First doubles backslashes that do not start a valid JSON escape (``C:\\Users``).  If that is
    not enough, also treats ``\\"`` as a plain quote, for replies that escaped the whole document.
    """
    fixed = _double_stray_backslashes(text)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        if '\\"' not in text:
            raise
    unescaped = _double_stray_backslashes(text.replace('\\"', '"'))
    return json.loads(unescaped)


def parse_extracted_array(text: str) -> Any:
    """(c) Parse the first ``[ { ... } ]`` span found anywhere in the text."""
    match = _ARRAY_OF_OBJECTS_RE.search(text)
    if match is None:
        raise ValueError("no JSON array of objects found in reply")
    return json.loads(match.group(0))


def parse_fenced_object(text: str) -> Any:
    """Strip a markdown code fence and keep the outermost ``{...}`` object."""
    match = _CODE_FENCE_RE.search(text)
    if match:
        text = match.group(1).strip()

    # Remove control characters except whitespace
    text = "".join(ch for ch in text if ch >= " " or ch in "\n\r\t")

    open_idx = text.find("{")
    if open_idx < 0:
        raise ValueError("no JSON object found in reply")
    brace_count = 0
    for i in range(open_idx, len(text)):
        if text[i] == "{":
            brace_count += 1
        elif text[i] == "}":
            brace_count -= 1
            if brace_count == 0:
                return json.loads(text[open_idx : i + 1])
    raise ValueError("unbalanced braces in reply")


SYNTHESIS_STRATEGIES: Sequence[Strategy] = (
    parse_direct,
    parse_normalised_escapes,
    parse_extracted_array,
)

SELECTION_STRATEGIES: Sequence[Strategy] = (
    parse_direct,
    parse_normalised_escapes,
    parse_extracted_array,
    parse_fenced_object,
)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
def parse_with_strategies(text: str, strategies: Sequence[Strategy]) -> ParseOutcome:
    """
    Try each strategy in order and return the first success.

    Raises
    ------
    JSONRepairError
        Carrying the error of the first (direct) attempt when every strategy fails.
    """
    first_error: Exception | None = None
    for strategy in strategies:
        try:
            value = strategy(text)
        except ValueError as exc:  # JSONDecodeError is a ValueError
            if first_error is None:
                first_error = exc
            logger.debug("JSON strategy %s failed: %s", strategy.__name__, exc)
            continue
        if strategy is not strategies[0]:
            logger.warning("Recovered model reply with %s", strategy.__name__)
        return ParseOutcome(value, strategy.__name__)

    raise JSONRepairError(f"Failed to parse JSON: {first_error}")

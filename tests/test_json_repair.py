"""Tests for the ordered JSON parsing strategies."""

import json

import pytest

from sage_agent.agent.json_repair import (
    SELECTION_STRATEGIES,
    SYNTHESIS_STRATEGIES,
    JSONRepairError,
    parse_direct,
    parse_extracted_array,
    parse_fenced_object,
    parse_normalised_escapes,
    parse_with_strategies,
)

STRAY_BACKSLASH = (
    '[{"reasoning": "saved", "response": "Report written to C:\\Users\\sage", '
    '"status": "success", "query": "q", "errors": []}]'
)


def test_valid_json_uses_direct_strategy() -> None:
    """Well-formed replies never reach the repair strategies."""
    outcome = parse_with_strategies('[{"a": 1}]', SYNTHESIS_STRATEGIES)
    assert outcome == ([{"a": 1}], "parse_direct")


def test_stray_backslash_is_repaired_without_extraction() -> None:
    """Strategy (b) recovers invalid escapes before (c) is tried."""
    with pytest.raises(json.JSONDecodeError):
        parse_direct(STRAY_BACKSLASH)

    outcome = parse_with_strategies(STRAY_BACKSLASH, SYNTHESIS_STRATEGIES)
    assert outcome.strategy == "parse_normalised_escapes"
    assert outcome.value[0]["response"] == "Report written to C:\\Users\\sage"


def test_valid_escapes_survive_normalisation() -> None:
    """Newlines and escaped quotes are left alone."""
    text = '{"a": "line\\nnext \\"quoted\\" \\q"}'
    assert parse_normalised_escapes(text) == {"a": 'line\nnext "quoted" \\q'}


def test_escaped_document_is_unescaped() -> None:
    """A reply that escaped every quote is still readable."""
    text = '[{\\"status\\": \\"success\\"}]'
    assert parse_normalised_escapes(text) == [{"status": "success"}]


def test_array_is_extracted_from_prose() -> None:
    """Strategy (c) finds the answer array inside surrounding text."""
    text = 'Sure! Here you go:\n```json\n[ {"status": "success"} ]\n```\nAnything else?'
    outcome = parse_with_strategies(text, SYNTHESIS_STRATEGIES)
    assert outcome.strategy == "parse_extracted_array"
    assert outcome.value == [{"status": "success"}]


def test_extraction_needs_an_array() -> None:
    """No array of objects means strategy (c) fails."""
    with pytest.raises(ValueError):
        parse_extracted_array("just words")


def test_fenced_object_for_selection() -> None:
    """Selection replies may be a single fenced object."""
    text = 'Plan:\n```json\n{"subquery": "x", "response": "y"}\n```'
    assert parse_fenced_object(text) == {"subquery": "x", "response": "y"}
    assert parse_with_strategies(text, SELECTION_STRATEGIES).strategy == "parse_fenced_object"


def test_all_strategies_fail() -> None:
    """The first error is reported when nothing parses."""
    with pytest.raises(JSONRepairError, match="Failed to parse JSON"):
        parse_with_strategies("I cannot help with that.", SYNTHESIS_STRATEGIES)


def test_tool_envelope_round_trip() -> None:
    """Tool output run through the chain keeps its status."""
    from sage_agent.tools import (  # pylint: disable=import-outside-toplevel
        tool_failure,
        tool_result,
    )

    for raw, status in (
        (tool_result({"price": 1}, "q"), "success"),
        (tool_failure("boom", "failed", "q"), "failure"),
    ):
        value = parse_with_strategies(raw, SYNTHESIS_STRATEGIES).value
        assert value[0]["status"] == status


def test_backslash_before_u_is_repaired() -> None:
    """Windows paths and coin names starting with 'u' are not unicode escapes."""
    text = '{"path": "C:\\users\\sage", "coin": "\\usdc", "accent": "caf\\u00e9"}'
    assert parse_normalised_escapes(text) == {
        "path": "C:\\users\\sage",
        "coin": "\\usdc",
        "accent": "café",
    }


def test_backslash_runs_are_repaired_by_parity() -> None:
    """An escaped backslash followed by a stray one keeps the pair intact."""
    assert parse_normalised_escapes('{"a": "x\\\\\\q"}') == {"a": "x\\\\q"}
    assert parse_normalised_escapes('{"a": "C:\\\\users"}') == {"a": "C:\\users"}

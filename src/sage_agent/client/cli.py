"""CLI client for the Sage API."""

from __future__ import annotations

import json
import logging
from typing import (
    Any,
    Dict,
    Tuple,
    cast,
)

import httpx

from sage_agent.common import (
    AnsiColors,
    colored_print,
    status_color,
)
from sage_agent.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(endpoint: str, data: Dict[str, Any], max_retries: int = 5) -> Dict[str, Any]:
    """Make a POST request to the API and return the response, waiting for it to come up."""
    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"

    for attempt in range(max_retries):
        try:
            # Tool calls can take as long as the tool timeout; leave room for three LLM calls
            with httpx.Client(timeout=(settings.TOOL_TIMEOUT or 120.0) + 180.0) as client:
                response = client.post(api_url, json=data)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
        except httpx.ConnectError:
            # Only connection setup is retried: the agent itself is never re-run
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                import time  # pylint: disable=import-outside-toplevel

                time.sleep(retry_delay)
                continue
            break
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            try:
                detail = e.response.json().get("detail", detail)
            except ValueError:
                pass
            logger.error("API error: %s", detail)
            return _error_result(f"API error: {detail}")
        except httpx.HTTPError as e:
            logger.error("API request error: %s", str(e))
            return _error_result(f"Error connecting to API: {str(e)}")

    return _error_result(f"Failed to connect to API after {max_retries} attempts")


def _error_result(message: str) -> Dict[str, Any]:
    return {"result": [{"status": "failure", "response": message, "errors": [message]}]}


def render_result(payload: Dict[str, Any]) -> None:
    """Print each answer item, colored by its status."""
    for item in payload.get("result") or []:
        response = item.get("response")
        if not isinstance(response, str):
            response = json.dumps(response, indent=2)
        color = status_color(item.get("status", "failure"))
        colored_print(response, color)
        for error in item.get("errors") or []:
            colored_print(f"  ⚠️ {error}", AnsiColors.RED)


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    address = settings.WALLET_ADDRESS
    private_key = settings.WALLET_PRIVATE_KEY

    colored_print("\n🔮 Sage shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    if not address and not private_key:
        colored_print(
            "No WALLET_ADDRESS or WALLET_PRIVATE_KEY set: wallet tools will be unavailable.",
            AnsiColors.YELLOW,
        )

    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        payload = call_api(
            "/agent", {"query": user_msg, "address": address, "private_key": private_key}
        )
        render_result(payload)


if __name__ == "__main__":
    run_cli()

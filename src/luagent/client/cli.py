"""CLI client for the luagent API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    Tuple,
    cast,
)

import httpx

from luagent.common import (
    AnsiColors,
    colored_print,
    print_answer,
    print_error,
)
from luagent.config import settings

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
    """
    POST *data* to the API and return the decoded JSON body.

    Connection failures are retried with exponential backoff.  Any other failure returns
    ``{"error": "..."}`` instead of raising.
    """
    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"

    for attempt in range(max_retries):
        try:
            # Agent runs can take a while: allow one LLM timeout per iteration
            timeout = settings.LLM_TIMEOUT * max(settings.MAX_ITERATIONS, 1)
            with httpx.Client(timeout=timeout) as client:
                response = client.post(api_url, json=data)
        except httpx.ConnectError as e:
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(retry_delay)
                continue
            logger.error("API connection error: %s", str(e))
            return {"error": f"Error connecting to API: {str(e)}"}
        except httpx.HTTPError as e:
            logger.error("API request error: %s", str(e))
            return {"error": f"Error connecting to API: {str(e)}"}

        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            return {"error": f"API error ({response.status_code}): {detail}"}
        return cast(Dict[str, Any], response.json())

    # If we've exhausted all retries without returning
    return {"error": f"Failed to connect to API after {max_retries} attempts"}


def run_cli() -> None:
    """Run the CLI client that sends tasks to one agent session over the API."""
    session_response = call_api("/sessions", {})
    session_id = session_response.get("session_id")

    if not session_id:
        error = session_response.get("error", "unknown error")
        print_error(f"Failed to create a session: {error}")
        return

    colored_print("\n🌙 luagent shell - type 'exit' or 'quit' to exit", AnsiColors.GREEN)
    while True:
        colored_print("\n🧑 Task: ", AnsiColors.BLUE, end="")
        task, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if task.lower() in {"exit", "quit"}:
            break
        if not task:
            continue

        response = call_api("/agent", {"task": task, "session_id": session_id})

        if "error" in response:
            print_error(response["error"])
        else:
            print_answer(response.get("answer", "No response from API"))


if __name__ == "__main__":
    run_cli()

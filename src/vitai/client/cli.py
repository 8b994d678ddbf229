"""CLI client for the VitAI API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    Optional,
    Tuple,
    cast,
)

import httpx

from vitai.client.render import (
    AnsiColors,
    colored_print,
    format_outcome,
    format_step,
)
from vitai.config import settings

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.5


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
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(
    method: str,
    endpoint: str,
    data: Dict[str, Any] | None = None,
    max_retries: int = 5,
    client: httpx.Client | None = None,
) -> Optional[Dict[str, Any]]:
    """Call the API and return the decoded JSON, retrying while the server is starting up."""
    if client is None:
        with httpx.Client(timeout=30.0) as own_client:
            return call_api(method, endpoint, data, max_retries, client=own_client)

    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"
    for attempt in range(max_retries):
        try:
            response = client.request(method, api_url, json=data)
            response.raise_for_status()
            return cast(Dict[str, Any], response.json())
        except httpx.ConnectError:
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
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text
            try:
                detail = exc.response.json().get("detail", detail)
            except ValueError:
                pass
            logger.error("API error %d: %s", exc.response.status_code, detail)
            colored_print(f"API error: {detail}", AnsiColors.RED)
            return None
        except httpx.HTTPError as exc:
            logger.error("API request error: %s", exc)
            colored_print(f"Error connecting to API: {exc}", AnsiColors.RED)
            return None

    colored_print(f"Failed to connect to API after {max_retries} attempts", AnsiColors.RED)
    return None


def follow_run(
    run_id: str, client: httpx.Client | None = None, poll_interval: float = POLL_INTERVAL
) -> Optional[Dict[str, Any]]:
    """Poll the conversation, printing each new thinking step, until *run_id* finishes."""
    shown = 0
    last_action = ""
    while True:
        snapshot = call_api("GET", "/conversation", client=client)
        if snapshot is None:
            return None
        if snapshot.get("run_id") != run_id:
            colored_print("⚠️ This question was replaced by a newer one.", AnsiColors.RED)
            return None

        turn = next((t for t in snapshot.get("turns", []) if t.get("type") == "agent"), None)
        if turn is None:
            return None
        steps = turn.get("thinking_steps", [])
        for index in range(shown, len(steps)):
            colored_print(format_step(index + 1, steps[index]), AnsiColors.GREEN)
        shown = len(steps)

        if turn.get("status") != "thinking":
            return turn
        action = snapshot.get("current_action") or ""
        if action and action != last_action:
            colored_print(action, AnsiColors.GREY)
            last_action = action
        time.sleep(poll_interval)


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    colored_print("\n🔮 VitAI shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    with httpx.Client(timeout=30.0) as client:
        while True:
            colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
            user_msg, ok = get_user_message()
            if not ok:
                break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
            if not user_msg:
                continue
            if user_msg.lower() in {"exit", "quit"}:
                break

            started = call_api("POST", "/questions", {"question": user_msg}, client=client)
            if not started:
                continue
            turn = follow_run(started["run_id"], client=client)
            if turn is None:
                continue
            color = AnsiColors.RED if turn.get("status") == "error" else AnsiColors.YELLOW
            colored_print(format_outcome(turn), color)


if __name__ == "__main__":
    run_cli()

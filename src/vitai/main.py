"""
VitAI entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface:
the REST API, the interactive CLI (API in a background thread), or a one-shot in-process question.
"""

import argparse
import logging
import sys

from vitai.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep per-request httpx logging out of the agent trace
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _ask_once(question: str) -> int:
    """Answer *question* in-process and print the result; returns the exit code."""
    # pylint: disable=import-outside-toplevel
    from vitai.agent.agent_loop import ask
    from vitai.agent.planner_interface import load_planner
    from vitai.client.render import (
        AnsiColors,
        colored_print,
        format_outcome,
        format_step,
    )

    turn = ask(question, load_planner())
    if turn is None:
        return 1
    for index, step in enumerate(turn.thinking_steps, start=1):
        colored_print(format_step(index, step.model_dump()), AnsiColors.GREEN)
    failed = turn.status.value == "error"
    colored_print(
        format_outcome(turn.model_dump(mode="json")),
        AnsiColors.RED if failed else AnsiColors.YELLOW,
    )
    return 1 if failed else 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the VitAI application.

    This function sets up the command-line interface, initializes logging, and starts the
    application in API, CLI or one-shot ``ask`` mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Ask questions about a fixed set of GitHub repos")
    parser.add_argument(
        "--mode",
        choices=["api", "cli", "ask"],
        type=str.lower,
        default="api",
        help="Launch the REST API, the interactive CLI, or answer one question (default: api)",
    )
    parser.add_argument("question", nargs="?", help="Question to answer in 'ask' mode")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Override MAX_ITERATIONS for this process",
    )
    args = parser.parse_args(argv)

    # Command-line arguments override env settings
    settings.LOG_LEVEL = args.log_level
    if args.max_iterations is not None:
        if args.max_iterations < 1:
            parser.error("--max-iterations must be at least 1")
        settings.MAX_ITERATIONS = args.max_iterations

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting VitAI [%s mode]", args.mode)
    logger.debug(
        "Settings: %s",
        settings.model_dump(exclude={"OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GITHUB_TOKEN"}),
    )

    if args.mode == "ask":
        if not args.question:
            parser.error("'ask' mode needs a question")
        sys.exit(_ask_once(args.question))

    # pylint: disable=import-outside-toplevel
    from vitai.api.app import run_api

    if args.mode == "api":
        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
        return

    import threading

    from vitai.client.cli import run_cli

    # Start API server in a separate thread
    api_thread = threading.Thread(
        target=run_api,
        kwargs={
            "host": "0.0.0.0",
            "port": settings.API_PORT,
            "reload": False,  # Reload doesn't work well with threading
            "log_level": "warning",
        },
        daemon=True,
    )
    api_thread.start()

    # Run CLI in main thread
    run_cli()


if __name__ == "__main__":
    main()

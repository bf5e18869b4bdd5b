"""
luagent entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate
interface (API server, interactive CLI, or a single task run locally).
"""

import argparse
import logging
import sys

from luagent.common import (
    print_answer,
    print_error,
)
from luagent.config import settings
from luagent.core.errors import AgentError

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
    # Keep HTTP client chatter out of agent logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _run_once(task: str, max_iterations: int | None) -> int:
    # Lazy import keeps the Lua runtime out of API/CLI-only startups
    from luagent.agent.agent_loop import create_agent  # pylint: disable=import-outside-toplevel

    agent = create_agent(max_iterations=max_iterations)
    try:
        answer = agent.run(task)
    except AgentError as exc:
        print_error(str(exc))
        return 1
    print_answer(answer)
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the luagent application.

    This function sets up the command-line interface, initializes logging, and either runs one
    task locally or starts the API (optionally with the interactive CLI client).
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run a Lua-scripting LLM agent")
    parser.add_argument(
        "--mode",
        choices=["api", "cli", "run"],
        type=str.lower,
        default="run",
        help="Run one task locally, serve the REST API, or API + interactive CLI (default: run)",
    )
    parser.add_argument("--task", help="Task to solve in 'run' mode")
    parser.add_argument(
        "--provider",
        choices=["ollama", "anthropic", "openai", "mock"],
        type=str.lower,
        help="LLM provider (default from env: %s)" % settings.LLM_PROVIDER,
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Iteration budget per task (default from env: %s)" % settings.MAX_ITERATIONS,
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override settings with command-line arguments
    settings.LOG_LEVEL = args.log_level
    if args.provider:
        settings.LLM_PROVIDER = args.provider

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting luagent [%s mode]", args.mode)
    logger.debug(
        "Settings: %s", settings.model_dump(exclude={"ANTHROPIC_API_KEY", "OPENAI_API_KEY"})
    )

    if args.mode == "run":
        if not args.task:
            parser.error("--task is required in 'run' mode")
        sys.exit(_run_once(args.task, args.max_iterations))

    if args.max_iterations is not None:
        settings.MAX_ITERATIONS = args.max_iterations

    from luagent.api.app import run_api  # pylint: disable=import-outside-toplevel

    if args.mode == "api":
        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
        return

    # Lazy import to avoid threading setup if not needed
    import threading  # pylint: disable=import-outside-toplevel

    from luagent.client.cli import run_cli  # pylint: disable=import-outside-toplevel

    # Start API server in a separate thread
    api_thread = threading.Thread(
        target=run_api,
        kwargs={
            "host": "127.0.0.1",
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

"""Console front end for the dispatch core.

Usage:
    agent-dispatch              # Interactive mode
    agent-dispatch --demo       # Scripted scenarios, no input needed
    agent-dispatch --parallel   # Fan out to matching capabilities concurrently
    agent-dispatch --stream     # Stream specialist replies from the chat model
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from typing import TextIO

from agent_dispatch.agent.capabilities import register_builtin_capabilities
from agent_dispatch.agent.orchestrator import Orchestrator
from agent_dispatch.agent.registry import CapabilityRegistry
from agent_dispatch.config import DispatchConfig, DispatchMode
from agent_dispatch.llm import create_chat_model

DEMO_REQUESTS = (
    "Book a flight to San Francisco next Monday",
    "Schedule a team meeting for next Wednesday at 2 PM",
    "Send an email to the team about the meeting",
    "Book a hotel in SF for Monday night and send confirmation email",
    "What's 25 * 48?",
    "What's the weather in Seattle?",
    "Add a task: Review pull request",
    "Add a task: Update documentation",
    "List my tasks",
    "Hello there",
)

_EXIT_WORDS = {"exit", "quit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-dispatch",
        description="Route requests to specialist capabilities with retry and metrics.",
    )
    parser.add_argument("--demo", action="store_true", help="run scripted scenarios and exit")
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="dispatch matching capabilities concurrently",
    )
    parser.add_argument(
        "--stream",
        action="store_true",
        help="stream specialist replies when a chat model is configured",
    )
    parser.add_argument("--max-attempts", type=int, default=3)
    parser.add_argument("--base-delay", type=float, default=1.0)
    parser.add_argument("--history-budget", type=int, default=4000)
    parser.add_argument("--timeout", type=float, default=30.0)
    parser.add_argument("--latency", type=float, default=0.0, help="simulated handler latency")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "WARNING"))
    return parser


def build_orchestrator(args: argparse.Namespace) -> Orchestrator:
    config = DispatchConfig(
        max_attempts=args.max_attempts,
        base_delay=args.base_delay,
        history_budget=args.history_budget,
        timeout_seconds=args.timeout,
        dispatch_mode=DispatchMode.PARALLEL if args.parallel else DispatchMode.SEQUENTIAL,
    )
    registry = CapabilityRegistry()
    llm = None if args.demo else create_chat_model()
    register_builtin_capabilities(
        registry, llm=llm, streaming=args.stream, simulated_latency=args.latency
    )
    return Orchestrator(registry, config)


async def run_demo(orchestrator: Orchestrator, out: TextIO = sys.stdout) -> None:
    """Replay the scripted scenarios without user interaction."""
    for text in DEMO_REQUESTS:
        print(f"User: {text}", file=out)
        response = await orchestrator.handle(text)
        print(f"\n{response.text}\n", file=out)


async def run_interactive(orchestrator: Orchestrator, out: TextIO = sys.stdout) -> None:
    """Read requests from stdin until a blank line or 'exit'."""
    names = ", ".join(orchestrator.registry.names())
    print(f"Available capabilities: {names}", file=out)
    print("Try: 'Book a flight to NYC next Tuesday and schedule a meeting'\n", file=out)
    while True:
        try:
            text = await asyncio.to_thread(input, "You: ")
        except EOFError:
            text = ""
        if not text.strip() or text.strip().lower() in _EXIT_WORDS:
            print("\nGoodbye!", file=out)
            return
        response = await orchestrator.handle(text)
        print(f"\nOrchestrator: {response.text}\n", file=out)


async def _run(args: argparse.Namespace) -> None:
    orchestrator = build_orchestrator(args)
    if args.demo:
        await run_demo(orchestrator)
    else:
        await run_interactive(orchestrator)
    print("Metrics Summary:")
    print(orchestrator.metrics.format_summary())


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())

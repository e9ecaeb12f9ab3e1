"""CLI entry point for the tool-calling agent.

This provides a simple terminal chat for testing and development.  For
production, use the FastAPI server (src/server.py).

Usage:
    uv run python -m src.main            # normal mode (quiet)
    uv run python -m src.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from src.agent import Agent, create_agent
from src.messages import Message

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(logging.DEBUG if debug else logging.INFO)


def _print_transcript(messages: list[Message], debug: bool) -> None:
    for message in messages:
        if message.role == "tool":
            if debug:
                print(f"  [tool {message.tool_name}] {message.content[:200]}")
            continue
        print(f"\nAssistant: {message.content}\n")


async def _chat_loop(agent: Agent, debug: bool) -> None:
    history: list[Message] = []
    try:
        while True:
            try:
                user_input = input("You: ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not user_input:
                continue

            if user_input.lower() in ("exit", "quit", "q"):
                print("\nGoodbye!")
                break

            if user_input.lower() == "new":
                history = []
                print("\n>> Conversation cleared.\n")
                continue

            result = await agent.run(user_input, history)
            _print_transcript(result.messages, debug)
            history.extend([Message.user(user_input), *result.messages])
    finally:
        await agent.backend.aclose()


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Tool-calling agent CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages and tool results",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Tool-calling Agent - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' to clear the conversation.")
    print("=" * 60 + "\n")

    agent = create_agent()
    logger.info("Using %s with model %s", agent.backend.host, agent.backend.model)
    try:
        asyncio.run(_chat_loop(agent, args.debug))
    except KeyboardInterrupt:
        print("\n\nGoodbye!")


if __name__ == "__main__":
    main()

"""Interactive console for listbot.

Usage: python -m listbot [--mock] [--conversation ID] [--store PATH] [-v]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from listbot.application import Application
from listbot.channel import ConsoleChannel
from listbot.config import Config
from listbot.errors import ConfigurationError
from listbot.store import JSONStore, MemoryStore

QUIT_COMMANDS = frozenset({"/quit", "/exit"})


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="listbot", description=__doc__)
    parser.add_argument("--mock", action="store_true", help="use the offline mock engine")
    parser.add_argument("--conversation", default="console", help="conversation id")
    parser.add_argument("--store", default=None, help="JSON file for persistent lists")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


async def _repl(app: Application, conversation_id: str) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, _read_line)
        if line is None or line.strip() in QUIT_COMMANDS:
            return
        if not line.strip():
            continue
        await app.handle_turn(
            {"type": "message", "conversation_id": conversation_id, "text": line}
        )


def _read_line() -> str | None:
    try:
        return input("you> ")
    except EOFError:
        return None


def main(argv: list[str] | None = None) -> int:
    """Run the console bot until EOF or /quit."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    overrides: dict[str, object] = {"provider": "mock"} if args.mock else {}
    if args.verbose:
        overrides["log_requests"] = True
    try:
        config = Config.from_env(**overrides)
    except ConfigurationError as e:
        print(f"error: {e}" + (f" ({e.hint})" if e.hint else ""), file=sys.stderr)
        return 2

    store = JSONStore(args.store) if args.store else MemoryStore()

    async def _run() -> None:
        async with Application(config, channel=ConsoleChannel(), store=store) as app:
            await _repl(app, args.conversation)

    asyncio.run(_run())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

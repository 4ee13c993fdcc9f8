"""Command-line access to the KeeeX local API.

    keeex hello
    keeex token my-app             # prints the granted token
    keeex --token T verify ./contract.pdf
    keeex --token T search invoice --type document --limit 5
    keeex --token T env get KEEEXED_PATH
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import httpx

from .client import KeeexClient
from .config import ClientSettings
from .logging_conf import get_logger, setup_logging
from .models import SearchOptions, VerifyOptions
from .routes import READABLE_ENV_VARS, WRITABLE_ENV_VARS
from .types import KeeexError

logger = get_logger("keeex.cli")

_SEARCH_TYPES = tuple(SearchOptions.model_fields)


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments; connection options default to KEEEX_* env vars."""
    parser = argparse.ArgumentParser(prog="keeex", description="KeeeX local API client")
    try:
        env = ClientSettings.from_env()
    except ValueError as e:
        parser.error(str(e))
    parser.add_argument("--host", default=env.host)
    parser.add_argument("--port", type=int, default=env.port)
    parser.add_argument("--token", default=env.token)
    parser.add_argument("--timeout", type=float, default=env.timeout)
    parser.add_argument("--log-level", default=None)

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("hello", help="check the API is reachable")

    p = sub.add_parser("token", help="request an API token (prompts the user)")
    p.add_argument("app_name")

    p = sub.add_parser("verify", help="verify a file")
    p.add_argument("path")
    p.add_argument("--import", dest="do_import", action="store_true")

    p = sub.add_parser("topics", help="show topics by idx")
    p.add_argument("idxs", nargs="+")

    p = sub.add_parser("search", help="search topics")
    p.add_argument("filter")
    p.add_argument("--topic", dest="topics", action="append", default=[])
    p.add_argument("--neg-topic", dest="neg_topics", action="append", default=[])
    p.add_argument("--skip", type=int, default=0)
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--type", dest="types", action="append", choices=_SEARCH_TYPES, default=[])

    sub.add_parser("me", help="show the current user")
    sub.add_parser("view", help="show the topic displayed in the app")

    p = sub.add_parser("env", help="read or write an app variable")
    env_sub = p.add_subparsers(dest="env_command", required=True)
    g = env_sub.add_parser("get")
    g.add_argument("name", choices=READABLE_ENV_VARS)
    s = env_sub.add_parser("set")
    s.add_argument("name", choices=WRITABLE_ENV_VARS)
    s.add_argument("value")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace, client: KeeexClient) -> Any:
    """Dispatch one parsed command; errors propagate to the caller."""
    cmd = args.command
    if cmd == "hello":
        return await client.hello()
    if cmd == "token":
        return await client.get_token(args.app_name)
    if cmd == "verify":
        return await client.verify(args.path, VerifyOptions(import_=args.do_import))
    if cmd == "topics":
        return await client.get_topics(args.idxs)
    if cmd == "search":
        option = SearchOptions(**{t: True for t in args.types})
        return await client.search(
            args.filter, args.topics, args.neg_topics, args.skip, args.limit, option
        )
    if cmd == "me":
        return await client.get_mine()
    if cmd == "view":
        return await client.get_current_view()
    if cmd == "env" and args.env_command == "get":
        return await client.get_env(args.name)
    if cmd == "env" and args.env_command == "set":
        return await client.set_env(args.name, args.value)
    raise ValueError(f"unknown command: {cmd}")  # pragma: no cover


async def _main(
    args: argparse.Namespace, transport: httpx.AsyncBaseTransport | None = None
) -> int:
    settings = ClientSettings(
        host=args.host, port=args.port, timeout=args.timeout, token=args.token
    )
    async with KeeexClient(settings, transport=transport) as client:
        try:
            result = await run(args, client)
        except (KeeexError, httpx.RequestError) as e:
            logger.error(
                "command.failed",
                extra={"event": "command_failed", "command": args.command, "error": str(e)},
            )
            return 1
    if isinstance(result, str):
        print(result)
    elif result is not None:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args.log_level:
        setup_logging(args.log_level)
    else:
        setup_logging()
    raise SystemExit(asyncio.run(_main(args)))

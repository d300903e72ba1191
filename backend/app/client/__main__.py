"""
命令行入口：python -m app.client {poll|ask|login|status}
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from app.client.chat import format_agent_reply
from app.client.poller import TabRequestPoller
from app.client.service_client import HelperServiceClient
from app.core.exceptions import UpstreamServiceError
from app.core.logging import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m app.client", description="Browser helper client")
    parser.add_argument("--url", default=None, help="Helper service URL (default: HELPER_SERVICE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("poll", help="Fulfil open-tab and screenshot requests from the helper service")
    ask = sub.add_parser("ask", help="Send one instruction to the helper agent")
    ask.add_argument("prompt", nargs="+")
    ask.add_argument("--debug", action="store_true")
    sub.add_parser("login", help="Open the Google login window of the helper browser")
    sub.add_parser("status", help="Show Google login status")
    return parser


async def _run(args: argparse.Namespace) -> int:
    async with HelperServiceClient(base_url=args.url) as client:
        try:
            if args.command == "poll":
                await TabRequestPoller(client).run()
                return 0
            if args.command == "ask":
                response = await client.invoke(" ".join(args.prompt), debug=args.debug)
                print(format_agent_reply(response))
                return 0 if response.get("success") else 1
            if args.command == "login":
                response = await client.google_login()
                print(response.get("message") or format_agent_reply(response))
                return 0 if response.get("success") else 1
            if args.command == "status":
                print(json.dumps(await client.auth_status(), indent=2))
                return 0
        except UpstreamServiceError as e:
            print(f"❌ Error: {e}", file=sys.stderr)
            return 2
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())

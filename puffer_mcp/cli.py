"""Command line interface for the Puffer Finance MCP server.

Usage:
    puffer-mcp serve
    puffer-mcp tools
    puffer-mcp call execute_bridge --args '{"fromChain": "Ethereum", ...}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from puffer_mcp import main as server_main
from puffer_mcp.config import load_settings
from puffer_mcp.errors import UnknownToolError
from puffer_mcp.main import build_services
from puffer_mcp.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("--args must be a JSON object")
    return value


def _print_result(result: Dict[str, Any]) -> None:
    for block in result.get("content", []):
        if block.get("type") == "text":
            print(block.get("text", ""))


async def run_tool(name: str, arguments: Dict[str, Any], verbose: bool) -> int:
    """Run one tool locally and print its result; returns the exit code."""
    settings = load_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)
    services = build_services(settings)
    try:
        result = await services.tools.call(name, arguments)
    except UnknownToolError as exc:
        print(f"{exc}. Available: {', '.join(services.tools.names)}", file=sys.stderr)
        return 2
    finally:
        await services.aclose()

    _print_result(result)
    return 1 if result.get("isError") else 0


async def list_tools() -> int:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)
    services = build_services(settings)
    try:
        print(json.dumps(services.tools.describe(), indent=2))
    finally:
        await services.aclose()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="puffer-mcp",
        description="Puffer Finance bridge and strategy MCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  puffer-mcp serve
  puffer-mcp call get_bridge_info
  puffer-mcp call simulate_deposit --args '{"strategyId": 1, "amount": "2"}'
        """,
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Run the stdio MCP server")
    subparsers.add_parser("tools", help="Print the tool list with input schemas")

    call = subparsers.add_parser("call", help="Run one tool and print its result")
    call.add_argument("tool", help="Tool name, e.g. execute_bridge")
    call.add_argument(
        "--args",
        dest="arguments",
        default=None,
        help="Tool arguments as a JSON object",
    )
    call.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logs on stderr",
    )
    return parser


def cli_main(argv: Optional[List[str]] = None) -> None:
    """Synchronous wrapper for CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "serve"):
        asyncio.run(server_main.main())
        return

    if args.command == "tools":
        sys.exit(asyncio.run(list_tools()))

    try:
        arguments = _parse_arguments(args.arguments)
    except ValueError as exc:
        parser.error(f"Invalid --args: {exc}")

    sys.exit(asyncio.run(run_tool(args.tool, arguments, args.verbose)))


if __name__ == "__main__":
    cli_main()

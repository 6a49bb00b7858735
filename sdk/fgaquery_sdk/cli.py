"""
Command line tool for querying OpenFGA.

Commands:
- find-users: Expand a relation on an object into users
- check: Check whether a relationship holds
- list-objects: List objects of a kind a subject has a relation on
- read: List stored tuples matching a query

Usage:
    fgaquery find-users document:planning viewer --max-depth 5
    fgaquery check user:bob viewer document:planning
    fgaquery list-objects user:bob viewer document
    fgaquery read --object document:planning

Connection settings come from OPENFGA_* environment variables, see
config.py. Results are printed as JSON on stdout.

Invariants:
    - Exit code 0 on success, 1 on SDK or configuration errors
    - Logs go to stderr, results to stdout
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import httpx
import json_log_formatter

from .client import FgaClient
from .config import FgaSettings
from .entity import Entity, RelationTuple
from .errors import FgaError

logger = logging.getLogger(__name__)


def setup_logging(settings: FgaSettings) -> None:
    """Configure logging based on settings.

    Args:
        settings: Client settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _query_entity(value: str | None) -> Entity | None:
    """Parse an entity argument. "kind:" selects every object of a kind."""
    if not value:
        return None
    if value.endswith(":"):
        return Entity(kind=value[:-1])
    return Entity.parse(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fgaquery", description="Query an OpenFGA store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    find_users = subparsers.add_parser("find-users", help="Expand a relation into users")
    find_users.add_argument("object", help="Object, e.g. document:planning")
    find_users.add_argument("relation", help="Relation, e.g. viewer")
    find_users.add_argument(
        "--max-depth", type=int, default=None, help="Expansion depth (default OPENFGA_MAX_DEPTH)"
    )
    find_users.add_argument("--timeout", type=float, default=None, help="Deadline in seconds")

    check = subparsers.add_parser("check", help="Check whether a relationship holds")
    check.add_argument("subject", help="Subject, e.g. user:bob")
    check.add_argument("relation", help="Relation")
    check.add_argument("object", help="Object")

    list_objects = subparsers.add_parser("list-objects", help="List accessible objects")
    list_objects.add_argument("subject", help="Subject, e.g. user:bob")
    list_objects.add_argument("relation", help="Relation")
    list_objects.add_argument("kind", help="Object kind, e.g. document")

    read = subparsers.add_parser("read", help="List stored tuples")
    read.add_argument("--subject", help="Subject to match")
    read.add_argument("--relation", default="", help="Relation to match")
    read.add_argument("--object", help="Object to match, 'kind:' for any object of a kind")
    read.add_argument("--page-size", type=int, default=0, help="Page size")
    read.add_argument("--continuation-token", default="", help="Token from a previous page")

    return parser


async def execute(client: FgaClient, args: argparse.Namespace) -> dict[str, Any]:
    """Run one command against a connected client and return its JSON result."""
    if args.command == "find-users":
        max_depth = args.max_depth if args.max_depth is not None else client.settings.max_depth
        users = await client.find_users_by_relation(
            RelationTuple(relation=args.relation, object=Entity.parse(args.object)),
            max_depth,
            timeout=args.timeout,
        )
        return {"users": [str(u) for u in users]}

    if args.command == "check":
        allowed = await client.check_relation(
            RelationTuple(
                subject=Entity.parse(args.subject),
                relation=args.relation,
                object=Entity.parse(args.object),
            )
        )
        return {"allowed": allowed}

    if args.command == "list-objects":
        objects = await client.find_accessible_objects_by_relation(
            RelationTuple(
                subject=Entity.parse(args.subject),
                relation=args.relation,
                object=Entity(kind=args.kind),
            )
        )
        return {"objects": [str(o) for o in objects]}

    if args.command == "read":
        tuples, token = await client.find_matching_tuples(
            RelationTuple(
                subject=_query_entity(args.subject),
                relation=args.relation,
                object=_query_entity(args.object),
            ),
            page_size=args.page_size,
            continuation_token=args.continuation_token,
        )
        return {
            "tuples": [
                {
                    "subject": str(t.tuple.subject) if t.tuple.subject else "",
                    "relation": t.tuple.relation,
                    "object": str(t.tuple.object) if t.tuple.object else "",
                    "timestamp": t.timestamp.isoformat(),
                }
                for t in tuples
            ],
            "continuation_token": token,
        }

    raise ValueError(f"Unknown command: {args.command}")


async def _run(settings: FgaSettings, args: argparse.Namespace, transport: Any) -> dict[str, Any]:
    async with FgaClient(settings, transport=transport) as client:
        return await execute(client, args)


def main(
    argv: list[str] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = FgaSettings()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(settings)

    try:
        result = asyncio.run(_run(settings, args, transport))
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except FgaError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=2))
    sys.exit(0)


if __name__ == "__main__":
    main()

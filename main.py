#!/usr/bin/env python3
"""
Rollet: split a roster into teams balanced across roles.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 9000
  python main.py assign --file roster.txt --teams 3
  python main.py assign --file roster.txt --teams 3 --json
  python main.py assign --file roster.txt --teams 3 --format csv
  python main.py assign --file roster.txt --teams 3 --no-color

Roster files hold one "name,role" pair per line; blank lines and # comments
are ignored.

Environment variables:
  SECRET_KEY    Session signing secret (required for serve unless DEBUG=true).
  DATABASE_URL  Account and history store (default: sqlite rollet.db).
"""

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Optional

from core.assigner import assign
from core.errors import ValidationError
from core.formatter import disable_color, print_teams, to_csv, to_json
from core.models import Person

logger = logging.getLogger("rollet.cli")


def _load_file(path: str) -> list[str]:
    """Read roster lines from a file. # comments and blank lines ignored.

    Resolves symlinks and verifies the path is a regular file before reading.
    """
    file_path = Path(path).resolve()
    if not file_path.is_file():
        print(f"  [!] '{path}' is not a readable file.")
        return []
    try:
        lines = file_path.read_text().splitlines()
    except OSError as e:
        print(f"  [!] Could not read file '{path}': {e}")
        return []
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


def parse_roster(lines: list[str]) -> list[Person]:
    """Turn "name,role" lines into people. Lines without a comma are skipped with a warning."""
    roster: list[Person] = []
    for lineno, line in enumerate(lines, start=1):
        name, sep, role = line.partition(",")
        if not sep:
            print(f"  [!] Skipping line {lineno}: expected 'name,role', got {line!r}")
            continue
        roster.append(Person(name=name.strip(), role=role.strip()))
    return roster


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


def _assign(args: argparse.Namespace) -> int:
    if args.no_color:
        disable_color()

    output_format = args.format or ("json" if args.json else "terminal")

    roster = parse_roster(_load_file(args.file))
    if not roster:
        print("  [!] No people loaded; nothing to assign.")
        return 1

    rng: Optional[random.Random] = random.Random(args.seed) if args.seed is not None else None
    try:
        result = assign(roster, args.teams, rng=rng)
    except ValidationError as e:
        print(f"  [!] {e.message}")
        return 1

    logger.debug("Assigned %d people to %d teams", result.total, args.teams)

    if output_format == "json":
        print(to_json(result))
    elif output_format == "csv":
        print(to_csv(result), end="")
    else:
        print_teams(result)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="rollet",
        description="Role-balanced team randomizer with an HTTP API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 8080
  python main.py assign --file roster.txt --teams 4
  python main.py assign --file roster.txt --teams 4 --format csv > teams.csv
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")

    local = sub.add_parser("assign", help="Split a roster file into teams locally, without saving")
    local.add_argument(
        "--file",
        required=True,
        metavar="PATH",
        help="Path to a text file with one 'name,role' pair per line (# comments supported)",
    )
    local.add_argument("--teams", type=int, required=True, metavar="N", help="Number of teams")
    local.add_argument("--seed", type=int, default=None, help="Seed the shuffle for a repeatable split")
    local.add_argument(
        "--json",
        action="store_true",
        help="Output structured JSON (shorthand for --format json)",
    )
    local.add_argument(
        "--format",
        choices=["terminal", "json", "csv"],
        default=None,
        metavar="FORMAT",
        help="Output format: terminal (default), json, or csv",
    )
    local.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color codes in terminal output",
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        from core.config import get_settings

        settings = get_settings()
        args.host = args.host or settings.host
        args.port = args.port or settings.port
        _serve(args)
        return 0
    if args.command == "assign":
        return _assign(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())

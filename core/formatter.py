"""
core/formatter.py -- Renders an AssignmentResult to terminal output, JSON, or CSV.
"""

import csv
import io
import json
import os
import re
import sys
from dataclasses import asdict
from typing import Optional

from .models import AssignmentResult

W = 68  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return _ANSI_RE.sub("", text)


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and checks sys.stdout.isatty().
    Can be overridden by calling disable_color().
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


# ---------------------------------------------------------------------------
# ANSI code helpers: return empty string when color is off
# ---------------------------------------------------------------------------

# Cycled by team number so adjacent teams never share a color.
TEAM_COLORS = (
    "\033[91m",  # red
    "\033[93m",  # yellow
    "\033[94m",  # blue
    "\033[92m",  # green
    "\033[95m",  # magenta
    "\033[96m",  # cyan
)


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _team_color(team: int) -> str:
    return TEAM_COLORS[(team - 1) % len(TEAM_COLORS)] if _color_active() and team > 0 else ""


def _bar(char: str = "═") -> str:
    return char * W


# ---------------------------------------------------------------------------
# Terminal renderer
# ---------------------------------------------------------------------------


def print_teams(result: AssignmentResult) -> None:
    """Print one block per team with a role breakdown line, then the total."""
    bold = _bold()
    reset = _reset()
    dim = _dim()

    print(f"\n{bold}{_bar()}{reset}")
    print(f"  {bold}TEAMS: {result.total} people in {len(result.teams)} teams{reset}")
    print(f"{bold}{_bar()}{reset}")

    for group in result.teams:
        roles: dict[str, int] = {}
        for person in group.members:
            roles[person.role] = roles.get(person.role, 0) + 1
        breakdown = ", ".join(f"{role} ×{count}" for role, count in sorted(roles.items()))

        header = f"Team {group.team}"
        count = f"({len(group.members)})"
        print(f"\n  {_team_color(group.team)}{bold}{header:<46}{count}{reset}")
        print(f"  {dim}{breakdown}{reset}")
        print(f"  {'─' * (W - 2)}")
        for person in group.members:
            print(f"  {person.name:<40} {person.role}")

    print(f"\n{_bar()}\n")


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def to_json(result: AssignmentResult) -> str:
    """Same shape as the POST /api/v1/random response body."""
    return json.dumps(asdict(result), indent=2)


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def to_csv(result: AssignmentResult) -> str:
    """One row per person: team, name, role.

    Cells that begin with a spreadsheet formula trigger (= + - @) are
    prefixed with a tab so a roster name cannot execute as a formula when
    the file is opened in Excel or LibreOffice (CWE-1236).
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["team", "name", "role"])
    for group in result.teams:
        for person in group.members:
            writer.writerow([group.team, _sanitize_csv_cell(person.name), _sanitize_csv_cell(person.role)])
    return buf.getvalue()


_FORMULA_PREFIXES = ("=", "+", "-", "@")


def _sanitize_csv_cell(value: str) -> str:
    if value and value.startswith(_FORMULA_PREFIXES):
        return "\t" + value
    return value

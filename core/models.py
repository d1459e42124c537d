from dataclasses import dataclass, field
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Team numbers are 1-based; 0 marks a roster entry not yet assigned.
UNASSIGNED = 0


@dataclass
class Person:
    """A roster entry. id is None until the roster store has saved it."""

    name: str
    role: str
    team: int = UNASSIGNED
    id: Optional[int] = None


@dataclass
class TeamGroup:
    team: int
    members: list[Person] = field(default_factory=list)


@dataclass
class AssignmentResult:
    """People grouped by team number, ascending. Derived, never stored."""

    teams: list[TeamGroup] = field(default_factory=list)
    total: int = 0

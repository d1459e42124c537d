"""
core/assigner.py -- Role-balanced team assignment.

No side effects. No print statements. Designed to be called by both
the CLI (via main.py) and the REST API (via roster/service.py).

Balance rule: people are grouped by role, each role group is shuffled on
its own, and team numbers are handed out by ONE running counter that keeps
counting across role groups. Each role group therefore occupies consecutive
slots of the cycle 1..team_count, so for every role the member counts of any
two teams differ by at most one, and overall team sizes differ by at most one.
Restarting the counter per role group would stack the remainder of every
role onto team 1.
"""

import random
from collections.abc import Iterable, Sequence
from typing import Optional

from core.errors import ValidationError
from core.models import UNASSIGNED, AssignmentResult, Person, TeamGroup


def _validate_roster(roster: Sequence[Person], team_count: int) -> None:
    if team_count < 1:
        raise ValidationError("team_count must be at least 1.")
    if not roster:
        raise ValidationError("Roster must contain at least one person.")
    for person in roster:
        if not person.name or not person.name.strip():
            raise ValidationError("Every person needs a name.")
        if not person.role or not person.role.strip():
            raise ValidationError(f"Person {person.name!r} needs a role.")


def assign(
    roster: Sequence[Person],
    team_count: int,
    rng: Optional[random.Random] = None,
) -> AssignmentResult:
    """Split roster into team_count teams, balanced per role.

    Input Person objects are not modified; the result holds fresh copies
    with team set. rng defaults to a new random.Random() per call, seeded
    from OS entropy, so concurrent requests never share a random stream.

    Raises ValidationError for an empty roster, a team_count below 1, or an
    entry with a blank name or role.
    """
    _validate_roster(roster, team_count)
    if rng is None:
        rng = random.Random()

    by_role: dict[str, list[Person]] = {}
    for entry in roster:
        by_role.setdefault(entry.role, []).append(Person(name=entry.name, role=entry.role))

    assigned: list[Person] = []
    index = 0
    for members in by_role.values():
        shuffled = list(members)
        rng.shuffle(shuffled)
        for person in shuffled:
            person.team = (index % team_count) + 1
            index += 1
            assigned.append(person)

    return group_by_team(assigned, team_count)


def group_by_team(people: Iterable[Person], team_count: Optional[int] = None) -> AssignmentResult:
    """Project people onto an AssignmentResult ordered by team number.

    With team_count, only teams 1..team_count are emitted and empty ones are
    skipped. Without it (history reads), every team number present is
    emitted in ascending order. Members keep their input order. Nothing is
    reshuffled.
    """
    people = list(people)
    by_team: dict[int, list[Person]] = {}
    for person in people:
        by_team.setdefault(person.team, []).append(person)

    if team_count is not None:
        numbers = [n for n in range(1, team_count + 1) if n in by_team]
    else:
        numbers = sorted(n for n in by_team if n != UNASSIGNED)
        if UNASSIGNED in by_team:
            numbers.append(UNASSIGNED)

    teams = [TeamGroup(team=n, members=by_team[n]) for n in numbers]
    return AssignmentResult(teams=teams, total=len(people))

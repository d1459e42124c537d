"""
roster/service.py -- Randomize and history operations.

TeamService glues the pure engine in core/assigner.py to the RosterStore
and the session validator. Sessions are optional for randomize: anonymous
callers get their teams back and nothing is saved.

A token that is presented but fails validation is an error, not an
anonymous request. Quietly skipping the save would let a client with an
expired token believe its roster was stored.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from typing import Optional

from auth.models import Account
from auth.tokens import SessionValidator
from core.assigner import assign, group_by_team
from core.errors import Unauthenticated
from core.models import AssignmentResult, Person
from roster.store import RosterStore

logger = logging.getLogger("rollet.roster")


class TeamService:
    def __init__(self, store: RosterStore, validator: SessionValidator) -> None:
        self.store = store
        self.validator = validator

    def randomize(
        self,
        roster: Sequence[Person],
        team_count: int,
        token: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> AssignmentResult:
        """Assign roster to team_count role-balanced teams; save them if signed in.

        Raises ValidationError for bad input, Unauthenticated for a token
        that does not validate, and StorageError if the save fails. A failed
        save fails the whole call even though the teams were computed.
        """
        account = self._account_for(token) if token else None
        result = assign(roster, team_count, rng=rng)
        if account is None:
            return result

        people = [person for group in result.teams for person in group.members]
        saved = self.store.insert_batch(account.id, people)
        return group_by_team(saved, team_count)

    def history(self, token: Optional[str]) -> AssignmentResult:
        """Regroup every saved person of the token's account by stored team number."""
        account = self._account_for(token)
        return group_by_team(self.store.fetch_by_account(account.id))

    def _account_for(self, token: Optional[str]) -> Account:
        account = self.validator.validate(token)
        if account is None:
            raise Unauthenticated()
        return account

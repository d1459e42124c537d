"""
api/routes/v1/teams.py -- Team randomization and history endpoints.

Routes:
  POST /api/v1/random   -- split a roster into role-balanced teams;
                           saved to the caller's history when a bearer
                           token is sent
  GET  /api/v1/history  -- every saved person of the caller, grouped by team

The bearer token is handed to TeamService as-is: the service decides what
a missing or invalid token means for each operation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import RandomizeRequest, RandomizeResponse
from auth.dependencies import bearer_token
from roster.service import TeamService

# Auth policy:
# - POST /api/v1/random:  optional auth -- anonymous results are not saved
# - GET  /api/v1/history: requires auth (TeamService.history raises Unauthenticated)
router = APIRouter()


@router.post("/random", response_model=RandomizeResponse)
def randomize(
    request: Request,
    body: RandomizeRequest,
    token: str | None = Depends(bearer_token),
) -> RandomizeResponse:
    """Assign the submitted people to team_count teams, balanced per role."""
    service: TeamService = request.app.state.team_service
    result = service.randomize(body.to_roster(), body.team_count, token=token)
    return RandomizeResponse.from_result(result)


@router.get("/history", response_model=RandomizeResponse)
def history(request: Request, token: str | None = Depends(bearer_token)) -> RandomizeResponse:
    """Return the caller's saved people grouped by their stored team number."""
    service: TeamService = request.app.state.team_service
    return RandomizeResponse.from_result(service.history(token))

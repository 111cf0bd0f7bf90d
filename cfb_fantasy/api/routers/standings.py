"""
League read-model endpoints: standings and team weekly points.

Both endpoints only read what the scoring engine stored; nothing is
recomputed on request.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database.connection import get_db
from ...database.models import FantasyTeam, FantasyTeamWeeklyPoints, League
from ...scoring.standings import StandingsTotalizer
from ..schemas import StandingResponse, TeamWeekResponse

router = APIRouter()


def _league_or_404(db: Session, league_id: int) -> League:
    league = db.get(League, league_id)
    if league is None:
        raise HTTPException(status_code=404, detail=f"League {league_id} not found")
    return league


@router.get("/{league_id}/standings", response_model=list[StandingResponse])
async def get_standings(league_id: int, db: Session = Depends(get_db)):
    """
    League table ordered by total points.

    Example URL: /api/leagues/3/standings
    """
    league = _league_or_404(db, league_id)
    return StandingsTotalizer(db).standings(league)


@router.get("/{league_id}/weekly-points", response_model=list[TeamWeekResponse])
async def get_weekly_points(
    league_id: int,
    week: int | None = Query(None, ge=0, description="Only this week"),
    db: Session = Depends(get_db),
):
    """
    Stored team-week rows for every team in the league.

    Example URLs:
    - /api/leagues/3/weekly-points
    - /api/leagues/3/weekly-points?week=12
    """
    _league_or_404(db, league_id)

    query = (
        db.query(FantasyTeamWeeklyPoints)
        .join(FantasyTeam, FantasyTeam.id == FantasyTeamWeeklyPoints.fantasy_team_id)
        .filter(FantasyTeam.league_id == league_id)
    )
    if week is not None:
        query = query.filter(FantasyTeamWeeklyPoints.week_number == week)

    return query.order_by(FantasyTeamWeeklyPoints.week_number, FantasyTeamWeeklyPoints.fantasy_team_id).all()

"""Standings Totalizer: full recompute of team totals from the weekly ledger."""

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database.models import FantasyTeam, FantasyTeamWeeklyPoints, League
from .exceptions import ScoringError
from .persistence import UnitWriter
from .summary import StageResult

logger = logging.getLogger(__name__)


@dataclass
class StandingRow:
    """One line of a league table."""

    rank: int
    team_id: int
    team_name: str
    total_points: float
    high_points_winnings: float
    weeks_scored: int


class StandingsTotalizer:
    """Sets FantasyTeam.total_points / high_points_winnings from weekly rows.

    Totals are never incremented: each pass replaces them with the sums of
    FantasyTeamWeeklyPoints, so they cannot drift however many partial
    recomputations ran before.
    """

    stage = "standings"

    def __init__(self, session: Session, writer: UnitWriter | None = None):
        self.session = session
        self.writer = writer or UnitWriter(session)

    def _weekly_sums(self, league: League) -> dict[int, tuple[float, float, int]]:
        rows = (
            self.session.query(
                FantasyTeamWeeklyPoints.fantasy_team_id,
                func.sum(FantasyTeamWeeklyPoints.points),
                func.sum(FantasyTeamWeeklyPoints.high_points_amount),
                func.count(FantasyTeamWeeklyPoints.id),
            )
            .join(FantasyTeam, FantasyTeam.id == FantasyTeamWeeklyPoints.fantasy_team_id)
            .filter(FantasyTeam.league_id == league.id)
            .group_by(FantasyTeamWeeklyPoints.fantasy_team_id)
            .all()
        )
        return {team_id: (points or 0, winnings or 0, weeks) for team_id, points, winnings, weeks in rows}

    def recompute_league(self, league: League) -> StageResult:
        """Replace every team's totals in one league."""
        result = StageResult(stage=self.stage, scope=f"league {league.id}")
        sums = self._weekly_sums(league)

        for team in league.teams:
            total, winnings, _ = sums.get(team.id, (0, 0, 0))

            def _apply(team=team, total=total, winnings=winnings):
                team.total_points = total
                team.high_points_winnings = winnings

            try:
                self.writer.run(f"team {team.id} totals", _apply)
                result.written += 1
            except ScoringError as e:
                logger.warning(f"Totals for team {team.id} not stored: {e}")
                result.failures.append(str(e))

        logger.info(f"Recomputed totals for {result.written} teams in league {league.id}")
        return result

    def standings(self, league: League) -> list[StandingRow]:
        """League table ordered by total points (ties share a rank)."""
        sums = self._weekly_sums(league)
        teams = sorted(league.teams, key=lambda team: (-(team.total_points or 0), team.name))

        rows = []
        previous_total = None
        rank = 0
        for position, team in enumerate(teams, start=1):
            if team.total_points != previous_total:
                rank = position
                previous_total = team.total_points
            rows.append(
                StandingRow(
                    rank=rank,
                    team_id=team.id,
                    team_name=team.name,
                    total_points=team.total_points or 0,
                    high_points_winnings=team.high_points_winnings or 0,
                    weeks_scored=sums.get(team.id, (0, 0, 0))[2],
                )
            )
        return rows

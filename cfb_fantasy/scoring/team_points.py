"""Fantasy Team Weekly Points Aggregator.

For every team in a league and a given week:

    points = sum(SchoolWeeklyPoints.total_points) + sum(LeagueEventBonus.points)

over the schools the team owned that week. Rows are always computed from
those source tables and replaced in full, so running a week twice gives the
same row rather than double the points.

Empty weeks: a team-week row exists only when at least one owned school has
a points row or a league bonus that week. A team whose schools were all idle
has no row, and any row left from an earlier run is deleted.

High points: when the league enables it, the best team-week (among the rows
written) earns high_points_weekly_amount. With high_points_allow_ties the
amount is split between tied teams; without it a tied week pays nobody.
"""

import logging
from collections import defaultdict

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database.models import FantasyTeamWeeklyPoints, League, LeagueEventBonus, SchoolWeeklyPoints
from .exceptions import NotFoundError, ScoringError
from .ownership import RosterOwnershipTracker
from .persistence import UnitWriter
from .summary import StageResult

logger = logging.getLogger(__name__)


class FantasyTeamPointsAggregator:
    """Rolls owned schools' points up into FantasyTeamWeeklyPoints."""

    stage = "team_points"

    def __init__(
        self,
        session: Session,
        writer: UnitWriter | None = None,
        ownership: RosterOwnershipTracker | None = None,
    ):
        self.session = session
        self.writer = writer or UnitWriter(session)
        self.ownership = ownership or RosterOwnershipTracker(session)

    def _school_points(self, season_id: int, week: int) -> dict[int, float]:
        rows = (
            self.session.query(SchoolWeeklyPoints.school_id, SchoolWeeklyPoints.total_points)
            .filter(SchoolWeeklyPoints.season_id == season_id, SchoolWeeklyPoints.week_number == week)
            .all()
        )
        return dict(rows)

    def _league_bonuses(self, league: League, week: int) -> dict[int, float]:
        rows = (
            self.session.query(LeagueEventBonus.school_id, func.sum(LeagueEventBonus.points))
            .filter(
                LeagueEventBonus.league_id == league.id,
                LeagueEventBonus.season_id == league.season_id,
                LeagueEventBonus.week_number == week,
            )
            .group_by(LeagueEventBonus.school_id)
            .all()
        )
        return {school_id: points or 0 for school_id, points in rows}

    def compute_week(self, league: League, week: int) -> dict[int, float]:
        """Team id -> points for every team with a data-bearing week.

        Teams absent from the result should have no row for the week.
        """
        school_points = self._school_points(league.season_id, week)
        bonuses = self._league_bonuses(league, week)

        team_points: dict[int, float] = {}
        for team in league.teams:
            owned = self.ownership.schools_owned(team, week)
            bearing = [sid for sid in sorted(owned) if sid in school_points or sid in bonuses]
            if not bearing:
                continue
            team_points[team.id] = sum(school_points.get(sid, 0) + bonuses.get(sid, 0) for sid in bearing)
        return team_points

    @staticmethod
    def high_points_awards(league: League, team_points: dict[int, float]) -> dict[int, float]:
        """Team id -> prize amount for the week's high-points winner(s)."""
        settings = league.settings
        if settings is None or not settings.high_points_enabled or not settings.high_points_weekly_amount:
            return {}
        if not team_points:
            return {}

        best = max(team_points.values())
        if best <= 0:
            return {}

        winners = [team_id for team_id, points in team_points.items() if points == best]
        if len(winners) > 1 and not settings.high_points_allow_ties:
            logger.info(f"League {league.id}: {len(winners)} teams tied for high points; no prize awarded")
            return {}

        share = settings.high_points_weekly_amount / len(winners)
        return {team_id: share for team_id in winners}

    def aggregate_week(self, league: League, week: int) -> StageResult:
        """Compute and store every team's row for one league-week."""
        result = StageResult(stage=self.stage, scope=f"league {league.id} week {week}")
        if league.season is None:
            raise NotFoundError(f"League {league.id} has no season")

        team_points = self.compute_week(league, week)
        awards = self.high_points_awards(league, team_points)

        existing = defaultdict(list)
        for row in (
            self.session.query(FantasyTeamWeeklyPoints)
            .filter(
                FantasyTeamWeeklyPoints.fantasy_team_id.in_([team.id for team in league.teams]),
                FantasyTeamWeeklyPoints.week_number == week,
            )
            .all()
        ):
            existing[row.fantasy_team_id].append(row)

        for team in league.teams:
            rows = existing.get(team.id, [])

            if team.id not in team_points:
                if not rows:
                    continue

                def _delete(rows=rows):
                    for row in rows:
                        self.session.delete(row)

                try:
                    self.writer.run(f"team {team.id} week {week} cleanup", _delete)
                    result.deleted += len(rows)
                    logger.info(f"Team {team.id}: removed week {week} row with no scoring schools")
                except ScoringError as e:
                    result.failures.append(str(e))
                continue

            def _upsert(team=team, rows=rows):
                row = rows[0] if rows else None
                if row is None:
                    row = FantasyTeamWeeklyPoints(fantasy_team_id=team.id, week_number=week)
                    self.session.add(row)
                row.points = team_points[team.id]
                row.is_high_points_winner = team.id in awards
                row.high_points_amount = awards.get(team.id, 0)

            try:
                self.writer.run(f"team {team.id} week {week}", _upsert)
                result.written += 1
            except ScoringError as e:
                logger.warning(f"Team {team.id} week {week} not stored: {e}")
                result.failures.append(str(e))

        logger.info(
            f"Team points league {league.id} week {week}: {result.written} written, {result.deleted} deleted"
            + (f", high points to {sorted(awards)}" if awards else "")
        )
        return result

"""Scoring pipeline - the re-run entry point.

Stage order for every run:

    Bracket Week Mapper (optional) -> game checks -> School Weekly Points
    -> per league: Event Bonuses, ownership checks, Team Weekly Points
    -> Standings Totalizer

Modes:
- WEEK:   one week, every league of the season
- SEASON: a range of weeks (default: every week of the season's format),
          every league
- LEAGUE: one week, one league. School points are shared by every league
          of the season, so this mode reads the stored rows instead of
          recomputing them; run WEEK or SEASON mode after new results.
          A bracket remap moves shared games and is refused here.

A remap that moves games adds the weeks they left and entered to the run,
so no stale row survives in a week the run would otherwise not touch. A
bracket format switch does the same with the event weeks of both formats.
A playoff week also brings in the earlier event weeks its games decide
(the bowl week, and the first-round week for quarterfinal byes).

The pipeline never commits; the caller owns the transaction (see
cfb_fantasy.database.session_scope). Two runs over the same season must not
overlap - serialize them in the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from ..config.scoring import ScoringRules
from ..database.models import League, Season
from .bracket import BracketWeekMapper, format_for_season
from .event_bonuses import BracketState, LeagueEventBonusResolver
from .exceptions import NotFoundError, ScoringError
from .ownership import RosterOwnershipTracker
from .persistence import UnitWriter
from .school_points import SchoolWeeklyPointsCalculator
from .standings import StandingsTotalizer
from .summary import RunSummary, StageResult
from .team_points import FantasyTeamPointsAggregator
from .validation import check_season_games

logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    WEEK = "week"
    SEASON = "season"
    LEAGUE = "league"


@dataclass
class RunRequest:
    """What to recompute."""

    mode: RunMode
    season_year: int
    week: int | None = None
    start_week: int | None = None
    end_week: int | None = None
    league_id: int | None = None
    remap_bracket: bool = False
    bracket_format: str | None = None  # Switch the season's format before remapping

    def validate(self):
        if self.mode in (RunMode.WEEK, RunMode.LEAGUE) and self.week is None:
            raise ValueError(f"Mode {self.mode.value} requires a week")
        if self.mode == RunMode.LEAGUE and self.league_id is None:
            raise ValueError("Mode league requires a league id")
        if self.mode == RunMode.LEAGUE and self.remap_bracket:
            raise ValueError("Mode league cannot remap the bracket; games are shared by every league")
        if self.start_week is not None and self.end_week is not None and self.end_week < self.start_week:
            raise ValueError(f"end_week {self.end_week} is before start_week {self.start_week}")
        if self.bracket_format is not None and not self.remap_bracket:
            raise ValueError("bracket_format only applies together with remap_bracket")


class ScoringPipeline:
    """Runs the scoring stages in order and collects a RunSummary."""

    def __init__(
        self,
        session: Session,
        rules: ScoringRules,
        writer: UnitWriter | None = None,
        write_retry_attempts: int = 3,
        write_retry_wait_seconds: float = 0.5,
    ):
        self.session = session
        self.rules = rules
        self.writer = writer or UnitWriter(session, write_retry_attempts, write_retry_wait_seconds)

        self.mapper = BracketWeekMapper(session, self.writer)
        self.school_points = SchoolWeeklyPointsCalculator(session, rules, self.writer)
        self.event_bonuses = LeagueEventBonusResolver(session, self.writer)
        self.ownership = RosterOwnershipTracker(session)
        self.team_points = FantasyTeamPointsAggregator(session, self.writer, self.ownership)
        self.totalizer = StandingsTotalizer(session, self.writer)

    def _season(self, year: int) -> Season:
        season = self.session.query(Season).filter_by(year=year).first()
        if season is None:
            raise NotFoundError(f"Season {year} not found")
        return season

    def _leagues(self, season: Season, league_id: int | None) -> list[League]:
        if league_id is None:
            return self.session.query(League).filter_by(season_id=season.id).order_by(League.id).all()

        league = self.session.get(League, league_id)
        if league is None:
            raise NotFoundError(f"League {league_id} not found")
        if league.season_id != season.id:
            raise NotFoundError(f"League {league_id} does not belong to season {season.year}")
        return [league]

    def _weeks(self, request: RunRequest, season: Season) -> list[int]:
        if request.mode != RunMode.SEASON:
            return [request.week]
        all_weeks = format_for_season(season).weeks()
        start = request.start_week if request.start_week is not None else all_weeks[0]
        end = request.end_week if request.end_week is not None else all_weeks[-1]
        return [week for week in all_weeks if start <= week <= end]

    def run(self, request: RunRequest) -> RunSummary:
        """Execute a run.

        Raises:
            ValueError: the request is malformed
            NotFoundError: the season (or the requested league) does not exist
        """
        request.validate()
        season = self._season(request.season_year)
        leagues = self._leagues(season, request.league_id)

        weeks = set(self._weeks(request, season))
        summary = RunSummary(mode=request.mode.value, season_year=season.year)
        logger.info(f"Scoring run: mode={request.mode.value} season={season.year} weeks={sorted(weeks)}")

        if request.remap_bracket:
            remap = StageResult(stage="bracket", scope=f"season {season.year}")
            previous_format = format_for_season(season)
            try:
                outcome = self.mapper.remap_season(season, request.bracket_format)
                if outcome.bracket_format != previous_format.name:
                    # Event bonuses move with the format: revisit the old and new event weeks
                    weeks.update(previous_format.event_weeks() | format_for_season(season).event_weeks())
                remap.written = len(outcome.moves)
                remap.issues.extend(outcome.issues)
                if outcome.changed:
                    logger.info(f"Remap moved games; also recomputing weeks {sorted(outcome.affected_weeks)}")
                    weeks.update(outcome.affected_weeks)
            except ScoringError as e:
                logger.warning(f"Bracket remap failed: {e}")
                remap.failures.append(str(e))
            summary.add(remap)

        fmt = format_for_season(season)
        for week in sorted(weeks):
            dependent = fmt.dependent_event_weeks(week) - weeks
            if dependent:
                logger.info(f"Week {week} decides event bonuses in weeks {sorted(dependent)}; adding them to the run")
                weeks.update(dependent)

        summary.weeks = sorted(weeks)
        summary.league_ids = [league.id for league in leagues]

        checks = StageResult(stage="validation", scope=f"season {season.year}")
        for week in summary.weeks:
            checks.issues.extend(check_season_games(self.session, season.id, week))
        summary.add(checks)

        if request.mode == RunMode.LEAGUE:
            logger.info("League mode: using stored school points shared with the season's other leagues")
        else:
            for week in summary.weeks:
                summary.add(self.school_points.calculate_week(season, week))

        state = BracketState(self.session, season, fmt)
        for league in leagues:
            for week in summary.weeks:
                summary.add(self.event_bonuses.resolve(league, week, state=state))
                ownership = StageResult(stage="ownership", scope=f"league {league.id} week {week}")
                ownership.issues.extend(self.ownership.check_exclusivity(league, week))
                summary.add(ownership)
                summary.add(self.team_points.aggregate_week(league, week))

            summary.add(self.totalizer.recompute_league(league))

        logger.info(
            f"Scoring run finished: {summary.rows_written} written, {summary.rows_deleted} deleted, "
            f"{summary.skipped} skipped, {len(summary.failures)} failures, {len(summary.issues)} integrity issues"
        )
        return summary

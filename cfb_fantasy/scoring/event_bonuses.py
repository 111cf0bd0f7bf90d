"""League Event Bonus Resolver.

Special events (bowl appearances, playoff rounds, championships, conference
championships, the Heisman) are worth different amounts in different
leagues, so they are stored per league in LeagueEventBonus rather than in
the league-agnostic SchoolWeeklyPoints.

Event weeks (from the season's BracketFormat, never from stored game weeks):
- conference championship week (15): conf_championship_win / _loss
- bowl week (17): bowl_appearance - non-playoff bowl participants AND every
  playoff participant (a playoff game is a bowl appearance too)
- first round week: cfp_first_round - first-round participants plus the bye
  teams (quarterfinalists who had no first-round game)
- quarterfinal / semifinal weeks: cfp_quarterfinal / cfp_semifinal
- championship week: championship_win / championship_loss
- Heisman week (22): heisman

Reconciliation: the current bracket state is the single source of truth.
Each resolve pass computes the full desired set of rows for its scope,
upserts them, and deletes every stored row in scope that is no longer
desired - so a school that drops out of the bowl picture after a schedule
correction loses its bowl_appearance row on the next run.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database.models import (
    BonusType,
    Game,
    GameStatus,
    HeismanWinner,
    League,
    LeagueEventBonus,
    LeagueSettings,
    PlayoffRound,
    School,
    Season,
)
from .bracket import BracketFormat, format_for_season
from .exceptions import NotFoundError, ScoringError
from .persistence import UnitWriter
from .summary import StageResult

logger = logging.getLogger(__name__)

# League setting that prices each bonus type
BONUS_SETTING = {
    BonusType.BOWL_APPEARANCE: "points_bowl_appearance",
    BonusType.CFP_FIRST_ROUND: "points_playoff_first_round",
    BonusType.CFP_QUARTERFINAL: "points_playoff_quarterfinal",
    BonusType.CFP_SEMIFINAL: "points_playoff_semifinal",
    BonusType.CHAMPIONSHIP_WIN: "points_championship_win",
    BonusType.CHAMPIONSHIP_LOSS: "points_championship_loss",
    BonusType.CONF_CHAMPIONSHIP_WIN: "points_conference_championship_win",
    BonusType.CONF_CHAMPIONSHIP_LOSS: "points_conference_championship_loss",
    BonusType.HEISMAN: "points_heisman_winner",
}

# (school_id, week_number, bonus_type value) -> (points, game_id)
DesiredBonuses = dict[tuple[int, int, str], tuple[float, int | None]]


def _winner_loser(game: Game) -> tuple[int | None, int | None]:
    """(winner, loser) school ids of a final game; (None, None) for a tie."""
    if game.home_score == game.away_score:
        return None, None
    if game.home_score > game.away_score:
        return game.home_school_id, game.away_school_id
    return game.away_school_id, game.home_school_id


class BracketState:
    """Who did what in one season's postseason, derived from final games.

    This is league-independent; the resolver prices it per league.
    Each attribute maps school id -> the game that earned the event
    (None for bye teams and the Heisman).
    """

    def __init__(self, session: Session, season: Season, fmt: BracketFormat):
        self.fmt = fmt
        self.conf_championship_winners: dict[int, int] = {}
        self.conf_championship_losers: dict[int, int] = {}
        self.bowl_participants: dict[int, int] = {}
        self.round_participants: dict[str, dict[int, int]] = {r.value: {} for r in PlayoffRound}
        self.first_round_byes: dict[int, None] = {}
        self.championship_winner: dict[int, int] = {}
        self.championship_loser: dict[int, int] = {}
        self.heisman_schools: dict[int, None] = {}

        games = (
            session.query(Game)
            .filter(Game.season_id == season.id, Game.status == GameStatus.FINAL.value)
            .filter(
                or_(
                    Game.week_number == fmt.conf_championship_week,
                    Game.is_bowl_game.is_(True),
                    Game.is_playoff_game.is_(True),
                    Game.playoff_round.isnot(None),
                )
            )
            .order_by(Game.week_number, Game.id)
            .all()
        )
        conference_of = self._conferences(session, games)

        for game in games:
            if not game.is_final:
                continue  # Final without both scores; reported by validation
            is_playoff = bool(game.is_playoff_game or game.playoff_round)

            if is_playoff:
                for school_id in game.school_ids():
                    # Playoff participants are bowl participants by definition
                    self.bowl_participants.setdefault(school_id, game.id)
                if game.playoff_round in self.round_participants:
                    for school_id in game.school_ids():
                        self.round_participants[game.playoff_round].setdefault(school_id, game.id)
                if game.playoff_round == PlayoffRound.CHAMPIONSHIP.value:
                    winner, loser = _winner_loser(game)
                    if winner is not None:
                        self.championship_winner[winner] = game.id
                    if loser is not None:
                        self.championship_loser[loser] = game.id
                continue

            if game.is_bowl_game and game.week_number == fmt.bowl_week:
                for school_id in game.school_ids():
                    self.bowl_participants.setdefault(school_id, game.id)
                continue

            if game.week_number == fmt.conf_championship_week:
                home_conf = conference_of.get(game.home_school_id)
                if home_conf and home_conf == conference_of.get(game.away_school_id):
                    winner, loser = _winner_loser(game)
                    if winner is not None:
                        self.conf_championship_winners[winner] = game.id
                    if loser is not None:
                        self.conf_championship_losers[loser] = game.id

        first_round = self.round_participants[PlayoffRound.FIRST_ROUND.value]
        for school_id in self.round_participants[PlayoffRound.QUARTERFINAL.value]:
            if school_id not in first_round:
                self.first_round_byes[school_id] = None

        for winner in session.query(HeismanWinner).filter_by(season_id=season.id).order_by(HeismanWinner.id):
            self.heisman_schools.setdefault(winner.school_id, None)

    @staticmethod
    def _conferences(session: Session, games: Iterable[Game]) -> dict[int, str | None]:
        school_ids = {sid for game in games for sid in game.school_ids()}
        if not school_ids:
            return {}
        rows = session.query(School.id, School.conference).filter(School.id.in_(school_ids)).all()
        return dict(rows)

    def events(self) -> list[tuple[BonusType, dict[int, int | None]]]:
        """Every (bonus type, school -> game) pair this bracket state earns."""
        first_round = dict(self.round_participants[PlayoffRound.FIRST_ROUND.value])
        for school_id, game_id in self.first_round_byes.items():
            first_round.setdefault(school_id, game_id)

        return [
            (BonusType.CONF_CHAMPIONSHIP_WIN, self.conf_championship_winners),
            (BonusType.CONF_CHAMPIONSHIP_LOSS, self.conf_championship_losers),
            (BonusType.BOWL_APPEARANCE, self.bowl_participants),
            (BonusType.CFP_FIRST_ROUND, first_round),
            (BonusType.CFP_QUARTERFINAL, self.round_participants[PlayoffRound.QUARTERFINAL.value]),
            (BonusType.CFP_SEMIFINAL, self.round_participants[PlayoffRound.SEMIFINAL.value]),
            (BonusType.CHAMPIONSHIP_WIN, self.championship_winner),
            (BonusType.CHAMPIONSHIP_LOSS, self.championship_loser),
            (BonusType.HEISMAN, self.heisman_schools),
        ]


class LeagueEventBonusResolver:
    """Computes and reconciles LeagueEventBonus rows for a league."""

    stage = "event_bonuses"

    def __init__(self, session: Session, writer: UnitWriter | None = None):
        self.session = session
        self.writer = writer or UnitWriter(session)

    def desired_bonuses(self, league: League, settings: LeagueSettings | None, state: BracketState) -> DesiredBonuses:
        """Price the bracket state with one league's settings."""
        desired: DesiredBonuses = {}
        if settings is None:
            return desired

        for bonus_type, schools in state.events():
            points = getattr(settings, BONUS_SETTING[bonus_type]) or 0
            if not points:
                continue
            week = state.fmt.event_week(bonus_type)
            for school_id, game_id in schools.items():
                desired.setdefault((school_id, week, bonus_type.value), (points, game_id))
        return desired

    def resolve(self, league: League, week: int | None = None, state: BracketState | None = None) -> StageResult:
        """Reconcile the league's bonus rows for one week, or for the whole season.

        Args:
            league: League whose settings price the events
            week: Restrict to this week; None reconciles every week of the season
            state: Pre-built bracket state (the pipeline shares one across leagues)
        """
        scope = f"league {league.id} " + (f"week {week}" if week is not None else "all weeks")
        result = StageResult(stage=self.stage, scope=scope)

        season = league.season
        if season is None:
            raise NotFoundError(f"League {league.id} has no season")

        fmt = format_for_season(season)
        if week is not None and week not in fmt.event_weeks():
            # Nothing can be earned here; still clear rows an older format left behind
            desired: DesiredBonuses = {}
        else:
            state = state or BracketState(self.session, season, fmt)
            if league.settings is None:
                logger.warning(f"League {league.id} has no settings; no event bonuses will be awarded")
            desired = self.desired_bonuses(league, league.settings, state)
            if week is not None:
                desired = {key: value for key, value in desired.items() if key[1] == week}

        query = self.session.query(LeagueEventBonus).filter(
            LeagueEventBonus.league_id == league.id, LeagueEventBonus.season_id == season.id
        )
        if week is not None:
            query = query.filter(LeagueEventBonus.week_number == week)
        existing = {(row.school_id, row.week_number, row.bonus_type): row for row in query.all()}

        stale = [row for key, row in existing.items() if key not in desired]

        def _reconcile():
            for row in stale:
                self.session.delete(row)
            for (school_id, bonus_week, bonus_type), (points, game_id) in sorted(desired.items()):
                row = existing.get((school_id, bonus_week, bonus_type))
                if row is None:
                    row = LeagueEventBonus(
                        league_id=league.id,
                        school_id=school_id,
                        season_id=season.id,
                        week_number=bonus_week,
                        bonus_type=bonus_type,
                    )
                    self.session.add(row)
                row.points = points
                row.game_id = game_id

        try:
            self.writer.run(scope + " event bonuses", _reconcile)
            result.written = len(desired)
            result.deleted = len(stale)
        except ScoringError as e:
            logger.warning(f"Event bonuses for {scope} not stored: {e}")
            result.failures.append(str(e))
            return result

        for row in stale:
            logger.info(
                f"League {league.id}: removed stale {row.bonus_type} for school {row.school_id} week {row.week_number}"
            )
        logger.info(f"Event bonuses {scope}: {result.written} current, {result.deleted} removed")
        return result

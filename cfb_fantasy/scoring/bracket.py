"""Bracket Week Mapper - the single source of truth for postseason weeks.

College football's postseason does not fit neatly into numbered weeks: the
playoff rounds are spread over several weeks and the spread has changed
between formats. Instead of hand-editing stored week numbers, every season
names a versioned BracketFormat and all postseason week numbers are derived
from it.

Current format (cfp12_spread):
- Weeks 0-14: regular season
- Week 15: conference championships
- Week 16: Army-Navy
- Week 17: bowl games (non-playoff postseason)
- Week 18: CFP first round
- Week 19: CFP quarterfinals
- Week 20: CFP semifinals
- Week 21: national championship
- Week 22: Heisman (award column, no games)

Earlier format (cfp12_compressed): first round and quarterfinals shared
week 18, semifinals week 19, championship week 20.

The maintenance pass (BracketWeekMapper.remap_season) rewrites
Game.week_number for playoff games whose stored week disagrees with the
season's format. Applying it twice changes nothing the second time.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..database.models import BonusType, Game, PlayoffRound, Season
from .exceptions import DataIntegrityError, IntegrityIssue, UnknownBracketFormatError
from .persistence import UnitWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BracketFormat:
    """A versioned round->week mapping for one season format."""

    name: str
    round_weeks: dict  # PlayoffRound value -> week number
    conf_championship_week: int = 15
    bowl_week: int = 17
    heisman_week: int = 22

    @property
    def max_week(self) -> int:
        return max([self.bowl_week, self.heisman_week, *self.round_weeks.values()])

    def weeks(self) -> list[int]:
        """Every week number a season in this format can have points in."""
        return list(range(0, self.max_week + 1))

    def week_for_round(self, playoff_round: str | PlayoffRound) -> int:
        """Canonical week of a playoff round."""
        key = playoff_round.value if isinstance(playoff_round, PlayoffRound) else playoff_round
        try:
            return self.round_weeks[key]
        except KeyError:
            raise DataIntegrityError(
                IntegrityIssue(
                    "unknown_playoff_round",
                    f"Playoff round {key!r} has no week in bracket format {self.name}",
                    {"playoff_round": key, "bracket_format": self.name},
                )
            ) from None

    def canonical_week(self, game: Game) -> int | None:
        """Canonical week for a game carrying a playoff round, else None.

        Regular-season and non-playoff bowl games keep whatever week the
        results feed stored.
        """
        if not game.playoff_round:
            return None
        return self.week_for_round(game.playoff_round)

    def event_week(self, bonus_type: BonusType) -> int:
        """Week a special-event bonus is credited in."""
        if bonus_type in (BonusType.CONF_CHAMPIONSHIP_WIN, BonusType.CONF_CHAMPIONSHIP_LOSS):
            return self.conf_championship_week
        if bonus_type == BonusType.BOWL_APPEARANCE:
            return self.bowl_week
        if bonus_type == BonusType.HEISMAN:
            return self.heisman_week
        round_for_bonus = {
            BonusType.CFP_FIRST_ROUND: PlayoffRound.FIRST_ROUND,
            BonusType.CFP_QUARTERFINAL: PlayoffRound.QUARTERFINAL,
            BonusType.CFP_SEMIFINAL: PlayoffRound.SEMIFINAL,
            BonusType.CHAMPIONSHIP_WIN: PlayoffRound.CHAMPIONSHIP,
            BonusType.CHAMPIONSHIP_LOSS: PlayoffRound.CHAMPIONSHIP,
        }
        return self.week_for_round(round_for_bonus[bonus_type])

    def event_weeks(self) -> set[int]:
        """All weeks in which any special-event bonus can land."""
        return {self.event_week(bonus_type) for bonus_type in BonusType}

    def dependent_event_weeks(self, week: int) -> set[int]:
        """Earlier event weeks whose bonuses are decided by games in ``week``.

        Every playoff game is also a bowl appearance, credited in the bowl
        week. A quarterfinal decides who had a first-round bye, credited in
        the first-round week.
        """
        weeks = set()
        if week in self.round_weeks.values():
            weeks.add(self.bowl_week)
        if week == self.week_for_round(PlayoffRound.QUARTERFINAL):
            weeks.add(self.week_for_round(PlayoffRound.FIRST_ROUND))
        weeks.discard(week)
        return weeks


CFP12_SPREAD = BracketFormat(
    name="cfp12_spread",
    round_weeks={
        PlayoffRound.FIRST_ROUND.value: 18,
        PlayoffRound.QUARTERFINAL.value: 19,
        PlayoffRound.SEMIFINAL.value: 20,
        PlayoffRound.CHAMPIONSHIP.value: 21,
    },
    heisman_week=22,
)

CFP12_COMPRESSED = BracketFormat(
    name="cfp12_compressed",
    round_weeks={
        PlayoffRound.FIRST_ROUND.value: 18,
        PlayoffRound.QUARTERFINAL.value: 18,
        PlayoffRound.SEMIFINAL.value: 19,
        PlayoffRound.CHAMPIONSHIP.value: 20,
    },
    heisman_week=20,
)

BRACKET_FORMATS: dict[str, BracketFormat] = {
    CFP12_SPREAD.name: CFP12_SPREAD,
    CFP12_COMPRESSED.name: CFP12_COMPRESSED,
}


def get_bracket_format(name: str) -> BracketFormat:
    """Look up a registered bracket format by name."""
    try:
        return BRACKET_FORMATS[name]
    except KeyError:
        raise UnknownBracketFormatError(
            f"Unknown bracket format {name!r}; known formats: {sorted(BRACKET_FORMATS)}"
        ) from None


def format_for_season(season: Season) -> BracketFormat:
    return get_bracket_format(season.bracket_format)


@dataclass(frozen=True)
class GameMove:
    """One playoff game whose stored week was rewritten."""

    game_id: int
    playoff_round: str
    old_week: int
    new_week: int


@dataclass
class RemapResult:
    """Outcome of a remap pass."""

    season_id: int
    bracket_format: str
    moves: list[GameMove] = field(default_factory=list)
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def affected_weeks(self) -> set[int]:
        """Weeks whose points must be recomputed because games left or entered them."""
        weeks = set()
        for move in self.moves:
            weeks.update((move.old_week, move.new_week))
        return weeks

    @property
    def changed(self) -> bool:
        return bool(self.moves)


class BracketWeekMapper:
    """Maintenance pass that aligns stored playoff weeks with the season's format."""

    def __init__(self, session: Session, writer: UnitWriter | None = None):
        self.session = session
        self.writer = writer or UnitWriter(session)

    def remap_season(self, season: Season, bracket_format: str | None = None) -> RemapResult:
        """Rewrite Game.week_number for playoff games out of place.

        Args:
            season: Season to normalize
            bracket_format: Optionally switch the season to this format first

        Returns:
            RemapResult with every move made and any integrity issues found
        """
        if bracket_format is not None and bracket_format != season.bracket_format:
            get_bracket_format(bracket_format)  # Validate before touching the season
            logger.info(
                f"Season {season.year}: bracket format {season.bracket_format} -> {bracket_format}"
            )
            season.bracket_format = bracket_format

        fmt = format_for_season(season)
        result = RemapResult(season_id=season.id, bracket_format=fmt.name)

        games = (
            self.session.query(Game)
            .filter(Game.season_id == season.id)
            .filter((Game.playoff_round.isnot(None)) | (Game.is_playoff_game.is_(True)))
            .order_by(Game.id)
            .all()
        )

        for game in games:
            if not game.playoff_round:
                issue = IntegrityIssue(
                    "playoff_round_missing",
                    f"Playoff game {game.id} ({game.bowl_name or 'unnamed'}) has no playoff round; week left at {game.week_number}",
                    {"game_id": game.id},
                )
                logger.warning(str(issue))
                result.issues.append(issue)
                continue

            try:
                target = fmt.canonical_week(game)
            except DataIntegrityError as e:
                logger.warning(str(e.issue))
                result.issues.append(e.issue)
                continue

            if target != game.week_number:
                result.moves.append(GameMove(game.id, game.playoff_round, game.week_number, target))

        if result.moves:
            moves_by_id = {move.game_id: move for move in result.moves}

            def _apply():
                for game in games:
                    move = moves_by_id.get(game.id)
                    if move is not None:
                        game.week_number = move.new_week

            self.writer.run(f"bracket remap for season {season.year}", _apply)
            for move in result.moves:
                logger.info(
                    f"Moved {move.playoff_round} game {move.game_id} from week {move.old_week} to week {move.new_week}"
                )
        else:
            logger.info(f"Season {season.year}: all playoff games already in canonical weeks")

        return result

"""Roster Ownership Tracker.

Ownership is time-sliced: a school belongs to whichever team has a
RosterPeriod covering the week, start_week and end_week both inclusive,
end_week None meaning "through the end of the season".

The draft and transaction flows are responsible for keeping periods
non-overlapping and contiguous. The engine relies on that but checks it,
reporting any week where a drafted school has no owner or several owners.
"""

import logging
from collections import defaultdict

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database.models import FantasyTeam, League, RosterPeriod
from .exceptions import IntegrityIssue

logger = logging.getLogger(__name__)


def _covers(week: int):
    """Filter for periods active in ``week``."""
    return (
        RosterPeriod.start_week <= week,
        or_(RosterPeriod.end_week.is_(None), RosterPeriod.end_week >= week),
    )


class RosterOwnershipTracker:
    """Answers "who owned what, when" from RosterPeriod rows."""

    def __init__(self, session: Session):
        self.session = session

    def schools_owned(self, team: FantasyTeam, week: int) -> set[int]:
        """School ids the team owned during ``week``."""
        rows = (
            self.session.query(RosterPeriod.school_id)
            .filter(RosterPeriod.fantasy_team_id == team.id, *_covers(week))
            .all()
        )
        return {school_id for (school_id,) in rows}

    def owners_by_school(self, league: League, week: int) -> dict[int, list[int]]:
        """School id -> ids of every team in the league owning it that week."""
        rows = (
            self.session.query(RosterPeriod.school_id, RosterPeriod.fantasy_team_id)
            .join(FantasyTeam, FantasyTeam.id == RosterPeriod.fantasy_team_id)
            .filter(FantasyTeam.league_id == league.id, *_covers(week))
            .order_by(RosterPeriod.school_id, RosterPeriod.fantasy_team_id)
            .all()
        )
        owners: dict[int, list[int]] = defaultdict(list)
        for school_id, team_id in rows:
            if team_id not in owners[school_id]:
                owners[school_id].append(team_id)
        return dict(owners)

    def first_owned_weeks(self, league: League) -> dict[int, int]:
        """School id -> first week any team in the league owned it."""
        rows = (
            self.session.query(RosterPeriod.school_id, RosterPeriod.start_week)
            .join(FantasyTeam, FantasyTeam.id == RosterPeriod.fantasy_team_id)
            .filter(FantasyTeam.league_id == league.id)
            .all()
        )
        first: dict[int, int] = {}
        for school_id, start_week in rows:
            if school_id not in first or start_week < first[school_id]:
                first[school_id] = start_week
        return first

    def check_exclusivity(self, league: League, week: int) -> list[IntegrityIssue]:
        """Flag drafted schools with zero or multiple owners in ``week``.

        A school only needs an owner from the first week it was ever owned in
        this league; before that it simply has not been drafted yet.
        """
        owners = self.owners_by_school(league, week)
        issues = []

        for school_id, team_ids in sorted(owners.items()):
            if len(team_ids) > 1:
                issues.append(
                    IntegrityIssue(
                        "multiple_owners",
                        f"League {league.id}: school {school_id} has {len(team_ids)} owners in week {week}",
                        {"league_id": league.id, "school_id": school_id, "week_number": week, "team_ids": team_ids},
                    )
                )

        for school_id, first_week in sorted(self.first_owned_weeks(league).items()):
            if first_week <= week and school_id not in owners:
                issues.append(
                    IntegrityIssue(
                        "ownership_gap",
                        f"League {league.id}: school {school_id} has no owner in week {week}",
                        {"league_id": league.id, "school_id": school_id, "week_number": week},
                    )
                )

        for issue in issues:
            logger.warning(str(issue))
        return issues

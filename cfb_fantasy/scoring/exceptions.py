"""Custom exceptions for the scoring engine.

Custom exceptions let the pipeline decide, per failure, whether to skip a
unit of work, surface a data problem, or retry a write:

1. NotFoundError: a season, school or league referenced by the unit does not
   exist. The unit is aborted; the batch continues.
2. DataIntegrityError: the source data breaks an invariant the engine relies
   on (overlapping ownership, a playoff game without a round, ...). Logged
   and reported in the run summary - never silently corrected.
3. TransientWriteError: a datastore write kept failing after its retries.

For beginners: every exception here inherits from ScoringError, so a caller
can catch the whole family with one ``except ScoringError`` while the
pipeline still tells them apart.

Usage Examples:
- raise NotFoundError(f"Season {year} not found")
- raise DataIntegrityError(IntegrityIssue("playoff_round_missing", "...", {"game_id": 12}))
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class IntegrityIssue:
    """A single data-integrity finding.

    kind is a short machine-readable tag ("multiple_owners",
    "playoff_round_missing", ...); refs holds the ids needed to locate the
    offending rows.
    """

    kind: str
    message: str
    refs: dict = field(default_factory=dict, compare=False, hash=False)

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"


class ScoringError(Exception):
    """Base exception for scoring engine errors."""


class NotFoundError(ScoringError):
    """Raised when a season, school or league needed by a unit of work is missing.

    Common Scenarios:
    - Re-running a season that was never created
    - A game referencing a school id that was deleted
    - A league id typed wrong on the command line
    """


class DataIntegrityError(ScoringError):
    """Raised when source data violates an invariant the engine depends on.

    The issue is carried on the exception so the pipeline can put it in the
    run summary unchanged.
    """

    def __init__(self, issue: IntegrityIssue):
        super().__init__(str(issue))
        self.issue = issue


class TransientWriteError(ScoringError):
    """Raised when a unit's datastore write still fails after all retries.

    The unit's SAVEPOINT has been rolled back, so nothing partial was stored.
    Re-running the same mode later is safe.
    """


class UnknownBracketFormatError(NotFoundError):
    """Raised when a season names a bracket format that is not registered."""

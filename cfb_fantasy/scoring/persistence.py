"""Atomic, retried writes for one unit of scoring work.

Every stage of the engine writes its rows one unit at a time (one
school-week, one league-week of bonuses, one team-week). A unit runs inside a
SAVEPOINT so it is stored complete or not at all, and operational database
errors (locked database, dropped connection) are retried before giving up.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .exceptions import DataIntegrityError, IntegrityIssue, TransientWriteError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitWriter:
    """Runs write callbacks inside a SAVEPOINT with tenacity retries."""

    def __init__(self, session: Session, attempts: int = 3, wait_seconds: float = 0.5):
        self.session = session
        self.attempts = max(1, attempts)
        self.wait_seconds = wait_seconds

    def run(self, label: str, write: Callable[[], T]) -> T:
        """Run ``write`` atomically; return its result.

        OperationalError is retried and finally re-raised as
        TransientWriteError; IntegrityError becomes DataIntegrityError. Other
        exceptions propagate untouched after the SAVEPOINT is rolled back.
        """
        retrying = Retrying(
            retry=retry_if_exception_type(OperationalError),
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.wait_seconds),
            before_sleep=lambda state: logger.warning(
                f"Write of {label} failed (attempt {state.attempt_number}), retrying"
            ),
        )
        try:
            for attempt in retrying:
                with attempt:
                    with self.session.begin_nested():
                        result = write()
                        self.session.flush()
        except RetryError as e:
            raise TransientWriteError(f"Write of {label} failed after {self.attempts} attempts") from e
        except IntegrityError as e:
            # A constraint refused the unit; report it like any other data problem
            raise DataIntegrityError(
                IntegrityIssue("constraint_violation", f"Write of {label} rejected: {e.orig}", {"unit": label})
            ) from e
        return result

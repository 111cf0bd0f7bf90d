"""Tests for atomic, retried unit writes."""

import pytest
from sqlalchemy.exc import OperationalError

from cfb_fantasy.database.models import School
from cfb_fantasy.scoring.exceptions import DataIntegrityError, TransientWriteError
from cfb_fantasy.scoring.persistence import UnitWriter


def _locked():
    return OperationalError("INSERT ...", {}, Exception("database is locked"))


def test_write_result_is_returned(session):
    writer = UnitWriter(session, attempts=1, wait_seconds=0)

    school = writer.run("add school", lambda: session.add(School(name="Alpha")) or "done")

    assert school == "done"
    assert session.query(School).count() == 1


def test_operational_errors_are_retried(session):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise _locked()
        session.add(School(name="Alpha"))

    UnitWriter(session, attempts=3, wait_seconds=0).run("flaky", flaky)

    assert len(calls) == 3
    assert session.query(School).count() == 1


def test_retries_exhausted_becomes_transient_error(session):
    def always_locked():
        raise _locked()

    with pytest.raises(TransientWriteError):
        UnitWriter(session, attempts=2, wait_seconds=0).run("locked", always_locked)


def test_failed_unit_leaves_nothing_behind(session):
    session.add(School(name="Kept"))
    session.flush()

    def half_written():
        session.add(School(name="Partial"))
        session.flush()
        raise ValueError("boom")

    with pytest.raises(ValueError):
        UnitWriter(session, attempts=1, wait_seconds=0).run("partial", half_written)

    assert [school.name for school in session.query(School)] == ["Kept"]


def test_constraint_violation_becomes_integrity_error(session):
    session.add(School(name="Alpha"))
    session.flush()

    with pytest.raises(DataIntegrityError) as excinfo:
        UnitWriter(session, attempts=1, wait_seconds=0).run("duplicate", lambda: session.add(School(name="Alpha")))

    assert excinfo.value.issue.kind == "constraint_violation"
    assert session.query(School).count() == 1

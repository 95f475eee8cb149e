from __future__ import annotations

from types import SimpleNamespace

import sqlalchemy as sa

from geoboard.db import locking
from geoboard.models.ranking_aggregate import RankingAggregate
from geoboard.services import rankings
from tests.testkit import at, create_player


class RecordingSession:
    """Stands in for a PostgreSQL-bound session; keeps the SQL it is given."""

    def __init__(self, dialect: str = "postgresql"):
        self.bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect))
        self.statements: list[tuple[str, dict]] = []

    def get_bind(self):
        return self.bind

    def execute(self, stmt, params=None):
        self.statements.append((str(stmt), params or {}))


def test_result_log_lock_is_shared_for_writers_and_exclusive_for_rebuild():
    db = RecordingSession()
    locking.lock_result_log(db)
    locking.lock_result_log(db, exclusive=True)

    (shared_sql, shared_params), (excl_sql, excl_params) = db.statements
    assert "pg_advisory_xact_lock_shared(hashtext(:k))" in shared_sql
    assert "pg_advisory_xact_lock(hashtext(:k))" in excl_sql
    assert shared_params == excl_params == {"k": locking.RESULT_LOG_LOCK}


def test_partition_locks_are_sorted_and_deduplicated():
    db = RecordingSession()
    locking.lock_partitions(db, ["ranking:b", "ranking:a", "ranking:b"])
    assert [params["k"] for _, params in db.statements] == ["ranking:a", "ranking:b"]


def test_locks_are_noops_on_sqlite():
    db = RecordingSession(dialect="sqlite")
    locking.lock_result_log(db, exclusive=True)
    locking.lock_partitions(db, ["ranking:a"])
    assert db.statements == []


def _track_locks(monkeypatch, db):
    calls = []

    def result_log(session, *, exclusive=False):
        aggregates = session.execute(sa.select(sa.func.count()).select_from(RankingAggregate)).scalar_one()
        calls.append(("result_log", exclusive, aggregates))

    def partitions(session, keys):
        calls.append(("partitions", len(set(keys)), None))

    monkeypatch.setattr(rankings, "lock_result_log", result_log)
    monkeypatch.setattr(rankings, "lock_partitions", partitions)
    return calls


def test_record_result_takes_shared_log_lock_before_partitions(db, identity_factory, monkeypatch):
    p = create_player(db, identity_factory)
    calls = _track_locks(monkeypatch, db)

    rankings.record_result(
        db,
        game_id=identity_factory.next_game_id(),
        player_id=p.id,
        guest_id=None,
        game_type="alps",
        total_score=10,
        average_score=2.0,
        total_distance=1.0,
        completed_at=at(2025, 6, 10),
    )
    db.commit()

    assert [(name, arg) for name, arg, _ in calls] == [("result_log", False), ("partitions", 8)]


def test_rebuild_holds_exclusive_log_lock_before_deleting(db, identity_factory, monkeypatch):
    p = create_player(db, identity_factory)
    rankings.record_result(
        db,
        game_id=identity_factory.next_game_id(),
        player_id=p.id,
        guest_id=None,
        game_type="alps",
        total_score=10,
        average_score=2.0,
        total_distance=1.0,
        completed_at=at(2025, 6, 10),
    )
    db.commit()
    calls = _track_locks(monkeypatch, db)

    assert rankings.rebuild_aggregates(db) == 1
    db.commit()

    # aggregates were still present when the exclusive lock was requested
    assert calls[0] == ("result_log", True, 8)


def test_guest_migration_takes_shared_log_lock(db, identity_factory, monkeypatch):
    p = create_player(db, identity_factory)
    calls = _track_locks(monkeypatch, db)

    assert rankings.migrate_guest_results(db, "guest-none", p.id) == 0
    assert calls[0][:2] == ("result_log", False)

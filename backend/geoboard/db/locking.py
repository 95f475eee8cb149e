from collections.abc import Iterable

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


def upsert_insert(db: Session, table: sa.Table):
    """INSERT construct that supports ``on_conflict_do_*`` for the bound dialect."""
    name = dialect_name(db)
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"upserts not supported for dialect {name!r}")


def lock_partitions(db: Session, keys: Iterable[str]) -> None:
    """Serialize writers per leaderboard partition until the transaction ends.

    Keys are locked in sorted order so two events touching overlapping
    partitions cannot deadlock. SQLite already serializes writers.
    """
    if dialect_name(db) != "postgresql":
        return
    for key in sorted(set(keys)):
        db.execute(sa.text("SELECT pg_advisory_xact_lock(hashtext(:k))"), {"k": key})


RESULT_LOG_LOCK = "rankings:result-log"


def lock_result_log(db: Session, *, exclusive: bool = False) -> None:
    """Writers replaying the result log into aggregates hold this shared;
    a full rebuild holds it exclusive, so no write lands between its
    delete and its replay. Taken before any partition lock."""
    if dialect_name(db) != "postgresql":
        return
    fn = "pg_advisory_xact_lock" if exclusive else "pg_advisory_xact_lock_shared"
    db.execute(sa.text(f"SELECT {fn}(hashtext(:k))"), {"k": RESULT_LOG_LOCK})

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.orm import Session

from geoboard.core.security import now_utc
from geoboard.db.locking import lock_partitions, lock_result_log, upsert_insert
from geoboard.models.game_result import GameResult
from geoboard.models.ranking_aggregate import RankingAggregate
from geoboard.models.user import User
from geoboard.schemas.ranking import GameTypeBreakdown, RankingRow, UserRankOut, UserStatsOut
from geoboard.services.errors import InvalidInputError
from geoboard.services.identity import AccountIdentity, identity_from
from geoboard.services.periods import PERIODS, as_utc, current_period_keys, period_key, validate_period
from geoboard.services.players import display_name, load_players, player_display_name, require_player
from geoboard.services.validation import (
    OVERALL,
    require_id,
    validate_game_type,
    validate_page,
    validate_sort_by,
)

logger = logging.getLogger(__name__)

_ra = RankingAggregate.__table__
_gr = GameResult.__table__


@dataclass(frozen=True)
class Partition:
    game_type: str
    period: str
    period_key: str

    @property
    def lock_key(self) -> str:
        return f"ranking:{self.game_type}:{self.period}:{self.period_key}"


def partitions_for(game_type: str, completed_at: datetime) -> list[Partition]:
    keys = current_period_keys(completed_at)
    return [
        Partition(gt, period, keys[period])
        for period in PERIODS
        for gt in (game_type, OVERALL)
    ]


def _partition_filter(table, partition: Partition):
    return sa.and_(
        table.c.game_type == partition.game_type,
        table.c.period == partition.period,
        table.c.period_key == partition.period_key,
    )


def _upsert_aggregate(
    db: Session,
    *,
    player_id: str,
    partition: Partition,
    total_score: int,
    player_name: str | None,
    player_image: str | None,
    ts: datetime,
):
    ins = upsert_insert(db, _ra).values(
        player_id=player_id,
        game_type=partition.game_type,
        period=partition.period,
        period_key=partition.period_key,
        total_score=total_score,
        total_games=1,
        average_score=float(total_score),
        best_score=total_score,
        player_name=player_name,
        player_image=player_image,
        rank=None,
        updated_at=ts,
    )
    ex = ins.excluded
    db.execute(ins.on_conflict_do_update(
        index_elements=[_ra.c.player_id, _ra.c.game_type, _ra.c.period, _ra.c.period_key],
        set_={
            "total_score": _ra.c.total_score + ex.total_score,
            "total_games": _ra.c.total_games + 1,
            "average_score": sa.cast(_ra.c.total_score + ex.total_score, sa.Float) / (_ra.c.total_games + 1),
            "best_score": sa.case((ex.best_score > _ra.c.best_score, ex.best_score), else_=_ra.c.best_score),
            "player_name": ex.player_name,
            "player_image": ex.player_image,
            "updated_at": sa.case((ex.updated_at > _ra.c.updated_at, ex.updated_at), else_=_ra.c.updated_at),
        },
    ))


def recalculate_ranks(db: Session, partition: Partition) -> int:
    """Full recompute: best_score desc, total_games asc, updated_at asc."""
    src = _ra.alias("ranked_src")
    ordered = (
        sa.select(
            src.c.player_id,
            sa.func.row_number().over(
                order_by=(
                    src.c.best_score.desc(),
                    src.c.total_games.asc(),
                    src.c.updated_at.asc(),
                    src.c.player_id.asc(),
                )
            ).label("new_rank"),
        )
        .where(_partition_filter(src, partition))
        .subquery("ordered")
    )
    result = db.execute(
        sa.update(_ra)
        .where(_partition_filter(_ra, partition), _ra.c.player_id == ordered.c.player_id)
        .values(rank=ordered.c.new_rank)
    )
    return result.rowcount


def _apply_result(db: Session, user: User, game_type: str, total_score: int, completed_at: datetime) -> list[Partition]:
    name = display_name(user.name, user.nickname)
    partitions = partitions_for(game_type, completed_at)
    for partition in partitions:
        _upsert_aggregate(
            db,
            player_id=user.id,
            partition=partition,
            total_score=total_score,
            player_name=name,
            player_image=user.image,
            ts=completed_at,
        )
    return partitions


def record_result(
    db: Session,
    *,
    game_id: str,
    player_id: str | None,
    guest_id: str | None,
    game_type: str,
    total_score: int,
    average_score: float,
    total_distance: float,
    completed_at: datetime | None = None,
) -> bool:
    """Store a finished game and fold it into every affected leaderboard.

    Returns False when ``game_id`` was already recorded; nothing changes then.
    The caller owns the transaction (commit/rollback).
    """
    game_id = require_id(game_id, "game_id")
    identity = identity_from(player_id, guest_id)
    game_type = validate_game_type(game_type)
    if total_score < 0 or average_score < 0 or total_distance < 0:
        raise InvalidInputError("scores and distance must be non-negative")
    completed_at = as_utc(completed_at or now_utc())

    user = None
    partitions: list[Partition] = []
    if isinstance(identity, AccountIdentity):
        user = require_player(db, identity.player_id)
        partitions = partitions_for(game_type, completed_at)
        lock_result_log(db)
        lock_partitions(db, [p.lock_key for p in partitions])

    ins = upsert_insert(db, _gr).values(
        id=str(uuid4()),
        game_id=game_id,
        player_id=user.id if user else None,
        guest_id=None if user else identity.guest_id,
        game_type=game_type,
        total_score=total_score,
        average_score=average_score,
        total_distance=total_distance,
        completed_at=completed_at,
    )
    inserted = db.execute(
        ins.on_conflict_do_nothing(index_elements=[_gr.c.game_id]).returning(_gr.c.id)
    ).first()
    if not inserted:
        logger.info("game result already recorded, skipping", extra={"game_id": game_id})
        return False

    if user is None:
        logger.info("guest game recorded", extra={"game_id": game_id, "guest_id": identity.guest_id})
        return True

    for partition in _apply_result(db, user, game_type, total_score, completed_at):
        recalculate_ranks(db, partition)

    logger.info(
        "game result aggregated",
        extra={"game_id": game_id, "player_id": user.id, "game_type": game_type},
    )
    return True


def migrate_guest_results(db: Session, guest_id: str, player_id: str) -> int:
    """Move a guest's games to an account and replay them into its aggregates.

    Ownership is moved and the guest link cleared in one statement, so a
    second run (or a concurrent one) finds nothing left to migrate.
    """
    guest_id = require_id(guest_id, "guest_id")
    player_id = require_id(player_id, "player_id")
    user = require_player(db, player_id)
    lock_result_log(db)

    migrated = db.execute(
        sa.update(_gr)
        .where(_gr.c.guest_id == guest_id)
        .values(player_id=user.id, guest_id=None)
        .returning(_gr.c.id, _gr.c.game_type, _gr.c.total_score, _gr.c.completed_at)
    ).mappings().all()
    if not migrated:
        logger.info("no guest results to migrate", extra={"guest_id": guest_id, "player_id": user.id})
        return 0

    rows = sorted(migrated, key=lambda r: (as_utc(r["completed_at"]), r["id"]))
    touched: dict[str, Partition] = {}
    for r in rows:
        for p in partitions_for(r["game_type"], as_utc(r["completed_at"])):
            touched[p.lock_key] = p
    lock_partitions(db, touched.keys())

    for r in rows:
        _apply_result(db, user, r["game_type"], int(r["total_score"]), as_utc(r["completed_at"]))
    for key in sorted(touched):
        recalculate_ranks(db, touched[key])

    logger.info(
        "guest results migrated",
        extra={"guest_id": guest_id, "player_id": user.id},
    )
    return len(rows)


def rebuild_aggregates(db: Session) -> int:
    """Drop every aggregate and replay the whole result log in completion order."""
    lock_result_log(db, exclusive=True)
    db.execute(sa.delete(_ra))

    rows = db.execute(
        sa.select(_gr.c.player_id, _gr.c.game_type, _gr.c.total_score, _gr.c.completed_at)
        .where(_gr.c.player_id.is_not(None))
        .order_by(_gr.c.completed_at, _gr.c.id)
    ).mappings().all()
    players = load_players(db, [r["player_id"] for r in rows])

    touched: dict[str, Partition] = {}
    applied = 0
    for r in rows:
        user = players.get(r["player_id"])
        if user is None:
            continue
        for p in _apply_result(db, user, r["game_type"], int(r["total_score"]), as_utc(r["completed_at"])):
            touched[p.lock_key] = p
        applied += 1
    for key in sorted(touched):
        recalculate_ranks(db, touched[key])
    return applied


def recalculate_all_ranks(db: Session) -> int:
    parts = db.execute(
        sa.select(_ra.c.game_type, _ra.c.period, _ra.c.period_key).distinct()
    ).all()
    for gt, period, key in parts:
        recalculate_ranks(db, Partition(gt, period, key))
    return len(parts)


def get_rankings(
    db: Session,
    *,
    game_type: str,
    period: str,
    period_key_value: str | None = None,
    limit: int,
    offset: int = 0,
    sort_by: str = "best",
    now: datetime | None = None,
) -> tuple[str, list[RankingRow]]:
    game_type = validate_game_type(game_type, allow_overall=True)
    validate_period(period)
    validate_sort_by(sort_by)
    limit, offset = validate_page(limit, offset)
    key = period_key_value or period_key(period, now or now_utc())
    partition = Partition(game_type, period, key)

    if sort_by == "total":
        order_by = (_ra.c.total_score.desc(), _ra.c.total_games.asc(), _ra.c.player_id.asc())
    else:
        order_by = (sa.case((_ra.c.rank.is_(None), 1), else_=0), _ra.c.rank.asc(), _ra.c.player_id.asc())

    rows = db.execute(
        sa.select(_ra)
        .where(_partition_filter(_ra, partition))
        .order_by(*order_by)
        .limit(limit)
        .offset(offset)
    ).mappings().all()
    players = load_players(db, [r["player_id"] for r in rows])

    return key, [
        RankingRow(
            rank=r["rank"],
            position=offset + i + 1,
            player_id=r["player_id"],
            player_name=player_display_name(players, r["player_id"], r["player_name"]),
            player_image=players[r["player_id"]].image if r["player_id"] in players else r["player_image"],
            total_score=int(r["total_score"]),
            total_games=int(r["total_games"]),
            average_score=float(r["average_score"]),
            best_score=int(r["best_score"]),
        )
        for i, r in enumerate(rows)
    ]


def get_user_rank(
    db: Session,
    *,
    player_id: str,
    game_type: str,
    period: str,
    period_key_value: str | None = None,
    now: datetime | None = None,
) -> UserRankOut | None:
    game_type = validate_game_type(game_type, allow_overall=True)
    validate_period(period)
    key = period_key_value or period_key(period, now or now_utc())

    row = db.execute(
        sa.select(_ra).where(
            _ra.c.player_id == player_id,
            _partition_filter(_ra, Partition(game_type, period, key)),
        )
    ).mappings().first()
    if not row:
        return None
    return UserRankOut(
        rank=row["rank"],
        period_key=key,
        total_score=int(row["total_score"]),
        total_games=int(row["total_games"]),
        average_score=float(row["average_score"]),
        best_score=int(row["best_score"]),
    )


def get_user_stats(db: Session, player_id: str) -> UserStatsOut:
    rows = db.execute(
        sa.select(_ra).where(_ra.c.player_id == player_id, _ra.c.period == "alltime")
    ).mappings().all()

    breakdown = {
        r["game_type"]: GameTypeBreakdown(
            games=int(r["total_games"]),
            best_score=int(r["best_score"]),
            total_score=int(r["total_score"]),
            average_score=float(r["average_score"]),
        )
        for r in rows
        if r["game_type"] != OVERALL
    }
    overall = next((r for r in rows if r["game_type"] == OVERALL), None)
    if overall is not None:
        total_games = int(overall["total_games"])
        total_score = int(overall["total_score"])
        best_score = int(overall["best_score"])
    else:
        total_games = sum(b.games for b in breakdown.values())
        total_score = sum(b.total_score for b in breakdown.values())
        best_score = max((b.best_score for b in breakdown.values()), default=0)

    ranks = [r["rank"] for r in rows if r["rank"] is not None]
    return UserStatsOut(
        player_id=player_id,
        total_games=total_games,
        best_score=best_score,
        total_score=total_score,
        average_score=(total_score / total_games) if total_games else 0.0,
        best_rank=min(ranks) if ranks else None,
        game_types=breakdown,
    )

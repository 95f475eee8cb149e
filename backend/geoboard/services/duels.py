from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.orm import Session

from geoboard.core.config import settings
from geoboard.core.security import now_utc
from geoboard.db.locking import lock_partitions, upsert_insert
from geoboard.models.duel import DuelResult, DuelStat
from geoboard.schemas.duel import DuelHistoryRow, DuelLeaderboardRow, DuelOut, DuelStatsOut
from geoboard.services.errors import InvalidInputError, NotFoundError
from geoboard.services.notifications import DuelCompletedEvent
from geoboard.services.periods import as_utc
from geoboard.services.players import load_players, player_display_name, require_player
from geoboard.services.validation import require_id, validate_game_type, validate_page

logger = logging.getLogger(__name__)

_dr = DuelResult.__table__
_ds = DuelStat.__table__


@dataclass(frozen=True)
class DuelSide:
    player_id: str
    game_id: str
    score: int
    time: int


@dataclass(frozen=True)
class DuelOutcome:
    duel_id: str
    winner_id: str
    loser_id: str
    points_earned: int
    created: bool
    event: DuelCompletedEvent | None


def determine_duel_winner(
    challenger_score: int,
    challenger_time: int,
    accepter_score: int,
    accepter_time: int,
) -> Literal["challenger", "accepter"]:
    """Higher score wins; on equal score the faster player; full tie goes to the challenger."""
    if challenger_score > accepter_score:
        return "challenger"
    if accepter_score > challenger_score:
        return "accepter"
    if challenger_time < accepter_time:
        return "challenger"
    if accepter_time < challenger_time:
        return "accepter"
    return "challenger"


def compute_points_earned(winner_points_before: int, loser_points_before: int) -> int:
    # catch-up bonus for beating someone at or above your own total
    bonus = settings.DUEL_CATCH_UP_BONUS if loser_points_before >= winner_points_before else 0
    return settings.DUEL_BASE_POINTS + bonus


def _lock_key(game_type: str) -> str:
    return f"duel:{game_type}"


def _current_points(db: Session, player_id: str, game_type: str) -> int:
    points = db.execute(
        sa.select(_ds.c.duel_points).where(_ds.c.player_id == player_id, _ds.c.game_type == game_type)
    ).scalar_one_or_none()
    return int(points or 0)


def _upsert_duel_stats(
    db: Session,
    *,
    player_id: str,
    game_type: str,
    is_winner: bool,
    points: int,
    ts: datetime,
):
    wins = 1 if is_winner else 0
    ins = upsert_insert(db, _ds).values(
        player_id=player_id,
        game_type=game_type,
        wins=wins,
        losses=1 - wins,
        total_duels=1,
        win_rate=float(wins),
        duel_points=points,
        rank=None,
        updated_at=ts,
    )
    ex = ins.excluded
    db.execute(ins.on_conflict_do_update(
        index_elements=[_ds.c.player_id, _ds.c.game_type],
        set_={
            "wins": _ds.c.wins + ex.wins,
            "losses": _ds.c.losses + ex.losses,
            "total_duels": _ds.c.total_duels + 1,
            "win_rate": sa.cast(_ds.c.wins + ex.wins, sa.Float) / (_ds.c.total_duels + 1),
            "duel_points": _ds.c.duel_points + ex.duel_points,
            "updated_at": ex.updated_at,
        },
    ))


def recalculate_duel_ranks(db: Session, game_type: str) -> int:
    """Full recompute: points desc, wins desc, win rate desc, duels desc."""
    src = _ds.alias("ranked_src")
    ordered = (
        sa.select(
            src.c.player_id,
            sa.func.row_number().over(
                order_by=(
                    src.c.duel_points.desc(),
                    src.c.wins.desc(),
                    src.c.win_rate.desc(),
                    src.c.total_duels.desc(),
                    src.c.player_id.asc(),
                )
            ).label("new_rank"),
        )
        .where(src.c.game_type == game_type)
        .subquery("ordered")
    )
    result = db.execute(
        sa.update(_ds)
        .where(_ds.c.game_type == game_type, _ds.c.player_id == ordered.c.player_id)
        .values(rank=ordered.c.new_rank)
    )
    return result.rowcount


def recalculate_all_duel_ranks(db: Session) -> int:
    game_types = db.execute(sa.select(_ds.c.game_type).distinct()).scalars().all()
    for gt in game_types:
        recalculate_duel_ranks(db, gt)
    return len(game_types)


def _existing_duel(db: Session, duel_seed: str, challenger: DuelSide, accepter: DuelSide):
    return db.execute(
        sa.select(_dr.c.id, _dr.c.winner_id, _dr.c.challenger_id, _dr.c.accepter_id, _dr.c.points_earned)
        .where(
            _dr.c.duel_seed == duel_seed,
            _dr.c.challenger_game_id == challenger.game_id,
            _dr.c.accepter_game_id == accepter.game_id,
        )
    ).mappings().first()


def complete_duel(
    db: Session,
    *,
    duel_seed: str,
    game_type: str,
    challenger: DuelSide,
    accepter: DuelSide,
    completed_at: datetime | None = None,
) -> DuelOutcome:
    """Record a finished duel, pay out points and re-rank the game type.

    The returned event must be dispatched only after the caller commits.
    """
    duel_seed = require_id(duel_seed, "duel_seed")
    game_type = validate_game_type(game_type)
    for side in (challenger, accepter):
        require_id(side.player_id, "player_id")
        require_id(side.game_id, "game_id")
        if side.score < 0 or side.time < 0:
            raise InvalidInputError("duel score and time must be non-negative")
    if challenger.player_id == accepter.player_id:
        raise InvalidInputError("challenger and accepter must be different players")
    require_player(db, challenger.player_id)
    accepter_user = require_player(db, accepter.player_id)
    completed_at = as_utc(completed_at or now_utc())

    lock_partitions(db, [_lock_key(game_type)])

    existing = _existing_duel(db, duel_seed, challenger, accepter)
    if existing:
        loser_id = existing["accepter_id"] if existing["winner_id"] == existing["challenger_id"] else existing["challenger_id"]
        logger.info("duel already recorded, skipping", extra={"duel_id": existing["id"]})
        return DuelOutcome(
            duel_id=existing["id"],
            winner_id=existing["winner_id"],
            loser_id=loser_id,
            points_earned=int(existing["points_earned"]),
            created=False,
            event=None,
        )

    side = determine_duel_winner(challenger.score, challenger.time, accepter.score, accepter.time)
    winner, loser = (challenger, accepter) if side == "challenger" else (accepter, challenger)

    # read both totals before anything in this duel is written
    winner_before = _current_points(db, winner.player_id, game_type)
    loser_before = _current_points(db, loser.player_id, game_type)
    points_earned = compute_points_earned(winner_before, loser_before)

    duel_id = str(uuid4())
    db.execute(sa.insert(_dr).values(
        id=duel_id,
        duel_seed=duel_seed,
        game_type=game_type,
        challenger_id=challenger.player_id,
        challenger_game_id=challenger.game_id,
        challenger_score=challenger.score,
        challenger_time=challenger.time,
        accepter_id=accepter.player_id,
        accepter_game_id=accepter.game_id,
        accepter_score=accepter.score,
        accepter_time=accepter.time,
        winner_id=winner.player_id,
        points_earned=points_earned,
        completed_at=completed_at,
    ))

    _upsert_duel_stats(db, player_id=winner.player_id, game_type=game_type, is_winner=True, points=points_earned, ts=completed_at)
    _upsert_duel_stats(db, player_id=loser.player_id, game_type=game_type, is_winner=False, points=0, ts=completed_at)
    recalculate_duel_ranks(db, game_type)

    logger.info(
        "duel applied: winner=%s +%d (before %d vs %d)",
        winner.player_id,
        points_earned,
        winner_before,
        loser_before,
        extra={"duel_id": duel_id, "game_type": game_type},
    )
    return DuelOutcome(
        duel_id=duel_id,
        winner_id=winner.player_id,
        loser_id=loser.player_id,
        points_earned=points_earned,
        created=True,
        event=DuelCompletedEvent(
            challenger_id=challenger.player_id,
            winner_id=winner.player_id,
            accepter_name=player_display_name({accepter_user.id: accepter_user}, accepter_user.id),
            duel_id=duel_id,
            game_type=game_type,
        ),
    )


def _leaderboard_row(r, players, rank: int | None) -> DuelLeaderboardRow:
    return DuelLeaderboardRow(
        rank=rank,
        player_id=r["player_id"],
        player_name=player_display_name(players, r["player_id"]),
        player_image=players[r["player_id"]].image if r["player_id"] in players else None,
        wins=int(r["wins"]),
        losses=int(r["losses"]),
        total_duels=int(r["total_duels"]),
        win_rate=float(r["win_rate"]),
        duel_points=int(r["duel_points"]),
    )


def get_duel_leaderboard(db: Session, *, game_type: str, limit: int, offset: int = 0) -> list[DuelLeaderboardRow]:
    game_type = validate_game_type(game_type)
    limit, offset = validate_page(limit, offset)
    rows = db.execute(
        sa.select(_ds)
        .where(_ds.c.game_type == game_type)
        .order_by(
            sa.case((_ds.c.rank.is_(None), 1), else_=0),
            _ds.c.rank.asc(),
            _ds.c.duel_points.desc(),
            _ds.c.player_id.asc(),
        )
        .limit(limit)
        .offset(offset)
    ).mappings().all()
    players = load_players(db, [r["player_id"] for r in rows])
    return [_leaderboard_row(r, players, r["rank"]) for r in rows]


def get_overall_leaderboard(db: Session, *, limit: int, offset: int = 0) -> list[DuelLeaderboardRow]:
    """Sums every game type per player; win rate and rank are derived per call."""
    limit, offset = validate_page(limit, offset)
    wins = sa.func.sum(_ds.c.wins)
    total_duels = sa.func.sum(_ds.c.total_duels)
    points = sa.func.sum(_ds.c.duel_points)
    win_rate = sa.case((total_duels > 0, sa.cast(wins, sa.Float) / total_duels), else_=0.0)

    rows = db.execute(
        sa.select(
            _ds.c.player_id,
            wins.label("wins"),
            sa.func.sum(_ds.c.losses).label("losses"),
            total_duels.label("total_duels"),
            points.label("duel_points"),
            win_rate.label("win_rate"),
        )
        .group_by(_ds.c.player_id)
        .order_by(points.desc(), wins.desc(), win_rate.desc(), total_duels.desc(), _ds.c.player_id.asc())
        .limit(limit)
        .offset(offset)
    ).mappings().all()
    players = load_players(db, [r["player_id"] for r in rows])
    return [_leaderboard_row(r, players, offset + i + 1) for i, r in enumerate(rows)]


def get_user_duel_stats(db: Session, *, player_id: str, game_type: str) -> DuelStatsOut | None:
    game_type = validate_game_type(game_type)
    row = db.execute(
        sa.select(_ds).where(_ds.c.player_id == player_id, _ds.c.game_type == game_type)
    ).mappings().first()
    if not row:
        return None
    return DuelStatsOut(
        wins=int(row["wins"]),
        losses=int(row["losses"]),
        total_duels=int(row["total_duels"]),
        win_rate=float(row["win_rate"]),
        duel_points=int(row["duel_points"]),
        rank=row["rank"],
    )


def get_duel_by_id(db: Session, duel_id: str) -> DuelOut:
    row = db.execute(sa.select(_dr).where(_dr.c.id == duel_id)).mappings().first()
    if not row:
        raise NotFoundError(f"duel not found: {duel_id}")
    players = load_players(db, [row["challenger_id"], row["accepter_id"]])
    return DuelOut(
        id=row["id"],
        duel_seed=row["duel_seed"],
        game_type=row["game_type"],
        challenger_id=row["challenger_id"],
        challenger_name=player_display_name(players, row["challenger_id"]),
        challenger_score=row["challenger_score"],
        challenger_time=row["challenger_time"],
        accepter_id=row["accepter_id"],
        accepter_name=player_display_name(players, row["accepter_id"]),
        accepter_score=row["accepter_score"],
        accepter_time=row["accepter_time"],
        winner_id=row["winner_id"],
        winner_name=player_display_name(players, row["winner_id"]),
        points_earned=row["points_earned"],
        completed_at=row["completed_at"],
    )


def get_duel_history(
    db: Session,
    *,
    player_id: str,
    game_type: str | None = None,
    limit: int,
    offset: int = 0,
) -> list[DuelHistoryRow]:
    limit, offset = validate_page(limit, offset)
    conds = [sa.or_(_dr.c.challenger_id == player_id, _dr.c.accepter_id == player_id)]
    if game_type is not None:
        conds.append(_dr.c.game_type == validate_game_type(game_type))

    rows = db.execute(
        sa.select(_dr)
        .where(*conds)
        .order_by(_dr.c.completed_at.desc(), _dr.c.id.desc())
        .limit(limit)
        .offset(offset)
    ).mappings().all()

    opponent_ids = [r["accepter_id"] if r["challenger_id"] == player_id else r["challenger_id"] for r in rows]
    players = load_players(db, opponent_ids)

    out = []
    for r, opponent_id in zip(rows, opponent_ids):
        is_challenger = r["challenger_id"] == player_id
        mine, theirs = ("challenger", "accepter") if is_challenger else ("accepter", "challenger")
        out.append(DuelHistoryRow(
            id=r["id"],
            duel_seed=r["duel_seed"],
            game_type=r["game_type"],
            opponent_id=opponent_id,
            opponent_name=player_display_name(players, opponent_id),
            opponent_image=players[opponent_id].image if opponent_id in players else None,
            my_score=r[f"{mine}_score"],
            my_time=r[f"{mine}_time"],
            opponent_score=r[f"{theirs}_score"],
            opponent_time=r[f"{theirs}_time"],
            is_winner=r["winner_id"] == player_id,
            my_role=mine,
            completed_at=r["completed_at"],
        ))
    return out

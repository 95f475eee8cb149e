"""Individual-game listings: every finished game is its own row, so one
player can appear many times. Ranks here are positions or "strictly better
games + 1" counts; nothing in this module reads or writes stored ranks."""
from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Session

from geoboard.core.security import now_utc
from geoboard.models.game_result import GameResult
from geoboard.schemas.ranking import RankPredictionOut, TopGameRow, UserGameStatsOut
from geoboard.services.periods import period_key, period_window
from geoboard.services.players import load_players, player_display_name
from geoboard.services.validation import validate_game_type, validate_page

_gr = GameResult.__table__


def _window_filter(game_type: str, period: str | None, now: datetime | None):
    conds = [_gr.c.game_type == game_type]
    if period is not None:
        start, end = period_window(period, period_key(period, now or now_utc()))
        if start is not None:
            conds.append(_gr.c.completed_at >= start)
        if end is not None:
            conds.append(_gr.c.completed_at < end)
    return conds


def _count(db: Session, conds) -> int:
    return int(db.execute(sa.select(sa.func.count()).select_from(_gr).where(*conds)).scalar_one())


def get_top_games(
    db: Session,
    *,
    game_type: str,
    period: str | None = None,
    limit: int,
    offset: int = 0,
    now: datetime | None = None,
) -> list[TopGameRow]:
    game_type = validate_game_type(game_type)
    limit, offset = validate_page(limit, offset)
    rows = db.execute(
        sa.select(_gr.c.game_id, _gr.c.player_id, _gr.c.total_score, _gr.c.completed_at)
        .where(*_window_filter(game_type, period, now))
        .order_by(_gr.c.total_score.desc(), _gr.c.completed_at.asc(), _gr.c.id.asc())
        .limit(limit)
        .offset(offset)
    ).mappings().all()
    players = load_players(db, [r["player_id"] for r in rows])

    return [
        TopGameRow(
            rank=offset + i + 1,
            game_id=r["game_id"],
            player_id=r["player_id"],
            player_name=player_display_name(players, r["player_id"]),
            player_image=players[r["player_id"]].image if r["player_id"] in players else None,
            total_score=int(r["total_score"]),
            completed_at=r["completed_at"],
        )
        for i, r in enumerate(rows)
    ]


def _better_games(db: Session, game_type: str, period: str | None, now: datetime | None, score: int) -> int:
    conds = _window_filter(game_type, period, now)
    return _count(db, [*conds, _gr.c.total_score > score])


def get_user_best_game_rank(
    db: Session,
    *,
    player_id: str,
    game_type: str,
    period: str | None = None,
    now: datetime | None = None,
) -> int | None:
    game_type = validate_game_type(game_type)
    best = db.execute(
        sa.select(sa.func.max(_gr.c.total_score))
        .where(*_window_filter(game_type, period, now), _gr.c.player_id == player_id)
    ).scalar_one()
    if best is None:
        return None
    return _better_games(db, game_type, period, now, int(best)) + 1


def get_user_game_stats(
    db: Session,
    *,
    player_id: str,
    game_type: str,
    period: str | None = None,
    now: datetime | None = None,
) -> UserGameStatsOut | None:
    game_type = validate_game_type(game_type)
    conds = _window_filter(game_type, period, now)
    row = db.execute(
        sa.select(
            sa.func.count().label("games_count"),
            sa.func.max(_gr.c.total_score).label("best_score"),
            sa.func.coalesce(sa.func.sum(_gr.c.total_score), 0).label("total_score"),
        )
        .where(*conds, _gr.c.player_id == player_id)
    ).mappings().first()
    if not row or not row["games_count"]:
        return None

    best = int(row["best_score"])
    return UserGameStatsOut(
        games_count=int(row["games_count"]),
        best_score=best,
        total_score=int(row["total_score"]),
        rank=_better_games(db, game_type, period, now, best) + 1,
        total_games_count=_count(db, conds),
    )


def predict_rank(
    db: Session,
    *,
    game_type: str,
    score: int,
    period: str = "weekly",
    now: datetime | None = None,
) -> RankPredictionOut:
    """Where a not-yet-recorded score would land among this window's games."""
    game_type = validate_game_type(game_type)
    conds = _window_filter(game_type, period, now)
    return RankPredictionOut(
        game_type=game_type,
        period=period,
        score=score,
        predicted_rank=_better_games(db, game_type, period, now, score) + 1,
        # the hypothetical game counts too
        total_games=_count(db, conds) + 1,
    )

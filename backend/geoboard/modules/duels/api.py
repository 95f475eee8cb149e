from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoboard.api.deps import http_error, require_service_caller
from geoboard.core.config import settings
from geoboard.db.session import get_db
from geoboard.schemas.duel import (
    DuelCompleteIn,
    DuelCompleteOut,
    DuelHistoryOut,
    DuelLeaderboardOut,
    DuelOut,
    DuelStatsOut,
)
from geoboard.services import duels as duel_service
from geoboard.services.errors import LeaderboardError
from geoboard.services.notifications import notify_duel_completed

router = APIRouter()


def _side(side) -> duel_service.DuelSide:
    return duel_service.DuelSide(
        player_id=side.player_id,
        game_id=side.game_id,
        score=side.score,
        time=side.time,
    )


@router.post("", response_model=DuelCompleteOut)
def complete_duel(
    payload: DuelCompleteIn,
    caller: str = Depends(require_service_caller),
    db: Session = Depends(get_db),
):
    try:
        outcome = duel_service.complete_duel(
            db,
            duel_seed=payload.duel_seed,
            game_type=payload.game_type,
            challenger=_side(payload.challenger),
            accepter=_side(payload.accepter),
        )
    except LeaderboardError as e:
        raise http_error(e)
    db.commit()

    # only after the duel is durable
    if outcome.event is not None:
        notify_duel_completed(outcome.event)

    return DuelCompleteOut(
        duel_id=outcome.duel_id,
        winner_id=outcome.winner_id,
        loser_id=outcome.loser_id,
        points_earned=outcome.points_earned,
        created=outcome.created,
    )


@router.get("/leaderboard", response_model=DuelLeaderboardOut)
def overall_leaderboard(
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    db: Session = Depends(get_db),
):
    limit = settings.DUEL_LEADERBOARD_DEFAULT_LIMIT if limit is None else limit
    try:
        rows = duel_service.get_overall_leaderboard(db, limit=limit, offset=offset)
    except LeaderboardError as e:
        raise http_error(e)
    return DuelLeaderboardOut(game_type="overall", limit=limit, offset=offset, rows=rows)


@router.get("/leaderboard/{game_type}", response_model=DuelLeaderboardOut)
def leaderboard(
    game_type: str,
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    db: Session = Depends(get_db),
):
    limit = settings.DUEL_LEADERBOARD_DEFAULT_LIMIT if limit is None else limit
    try:
        rows = duel_service.get_duel_leaderboard(db, game_type=game_type, limit=limit, offset=offset)
    except LeaderboardError as e:
        raise http_error(e)
    return DuelLeaderboardOut(game_type=game_type.strip(), limit=limit, offset=offset, rows=rows)


@router.get("/players/{player_id}/stats/{game_type}", response_model=DuelStatsOut | None)
def player_stats(player_id: str, game_type: str, db: Session = Depends(get_db)):
    try:
        return duel_service.get_user_duel_stats(db, player_id=player_id, game_type=game_type)
    except LeaderboardError as e:
        raise http_error(e)


@router.get("/players/{player_id}/history", response_model=DuelHistoryOut)
def player_history(
    player_id: str,
    game_type: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    db: Session = Depends(get_db),
):
    limit = settings.DUEL_LEADERBOARD_DEFAULT_LIMIT if limit is None else limit
    try:
        rows = duel_service.get_duel_history(
            db, player_id=player_id, game_type=game_type, limit=limit, offset=offset
        )
    except LeaderboardError as e:
        raise http_error(e)
    return DuelHistoryOut(
        player_id=player_id,
        game_type=game_type,
        limit=limit,
        offset=offset,
        next_offset=offset + limit if len(rows) == limit else None,
        rows=rows,
    )


@router.get("/{duel_id}", response_model=DuelOut)
def get_duel(duel_id: str, db: Session = Depends(get_db)):
    try:
        return duel_service.get_duel_by_id(db, duel_id)
    except LeaderboardError as e:
        raise http_error(e)

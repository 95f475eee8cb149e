from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoboard.api.deps import http_error, require_service_caller
from geoboard.core.config import settings
from geoboard.db.session import get_db
from geoboard.schemas.ranking import (
    GameResultIn,
    GameResultRecordedOut,
    GuestMigrationIn,
    GuestMigrationOut,
    RankingOut,
    RepairOut,
    UserRankOut,
    UserStatsOut,
)
from geoboard.services import duels as duel_service
from geoboard.services import rankings as ranking_service
from geoboard.services.errors import LeaderboardError

router = APIRouter()


@router.post("/results", response_model=GameResultRecordedOut)
def record_result(
    payload: GameResultIn,
    caller: str = Depends(require_service_caller),
    db: Session = Depends(get_db),
):
    try:
        recorded = ranking_service.record_result(
            db,
            game_id=payload.game_id,
            player_id=payload.player_id,
            guest_id=payload.guest_id,
            game_type=payload.game_type,
            total_score=payload.total_score,
            average_score=payload.average_score,
            total_distance=payload.total_distance,
        )
    except LeaderboardError as e:
        raise http_error(e)
    db.commit()
    return GameResultRecordedOut(game_id=payload.game_id, recorded=recorded)


@router.post("/guest-migrations", response_model=GuestMigrationOut)
def migrate_guest(
    payload: GuestMigrationIn,
    caller: str = Depends(require_service_caller),
    db: Session = Depends(get_db),
):
    try:
        migrated = ranking_service.migrate_guest_results(db, payload.guest_id, payload.player_id)
    except LeaderboardError as e:
        raise http_error(e)
    db.commit()
    return GuestMigrationOut(
        guest_id=payload.guest_id,
        player_id=payload.player_id,
        migrated_games=migrated,
        stats=ranking_service.get_user_stats(db, payload.player_id),
    )


@router.post("/repair", response_model=RepairOut)
def repair(
    rebuild: bool = Query(default=False, description="Replay the whole result log first"),
    caller: str = Depends(require_service_caller),
    db: Session = Depends(get_db),
):
    rebuilt = ranking_service.rebuild_aggregates(db) if rebuild else None
    out = RepairOut(
        ranking_partitions=ranking_service.recalculate_all_ranks(db),
        duel_partitions=duel_service.recalculate_all_duel_ranks(db),
        rebuilt_results=rebuilt,
    )
    db.commit()
    return out


@router.get("/players/{player_id}/summary", response_model=UserStatsOut)
def player_summary(player_id: str, db: Session = Depends(get_db)):
    return ranking_service.get_user_stats(db, player_id)


@router.get("/{game_type}/{period}", response_model=RankingOut)
def ranking(
    game_type: str,
    period: str,
    period_key: str | None = Query(default=None, description="Defaults to the current key"),
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    sort_by: str = Query(default="best", description="best|total"),
    db: Session = Depends(get_db),
):
    limit = settings.RANKINGS_DEFAULT_LIMIT if limit is None else limit
    try:
        key, rows = ranking_service.get_rankings(
            db,
            game_type=game_type,
            period=period,
            period_key_value=period_key,
            limit=limit,
            offset=offset,
            sort_by=sort_by,
        )
    except LeaderboardError as e:
        raise http_error(e)

    return RankingOut(
        game_type=game_type.strip(),
        period=period,
        period_key=key,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
        rows=rows,
    )


@router.get("/{game_type}/{period}/players/{player_id}", response_model=UserRankOut | None)
def player_rank(
    game_type: str,
    period: str,
    player_id: str,
    period_key: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return ranking_service.get_user_rank(
            db,
            player_id=player_id,
            game_type=game_type,
            period=period,
            period_key_value=period_key,
        )
    except LeaderboardError as e:
        raise http_error(e)

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoboard.api.deps import http_error
from geoboard.core.config import settings
from geoboard.db.session import get_db
from geoboard.schemas.ranking import RankPredictionOut, TopGamesOut, UserGameStatsOut
from geoboard.services import top_games as top_games_service
from geoboard.services.errors import LeaderboardError

router = APIRouter()


@router.get("/{game_type}/top", response_model=TopGamesOut)
def top_games(
    game_type: str,
    period: str | None = Query(default=None, description="daily|weekly|monthly|alltime; omitted = all time"),
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    db: Session = Depends(get_db),
):
    limit = settings.TOP_GAMES_DEFAULT_LIMIT if limit is None else limit
    try:
        rows = top_games_service.get_top_games(
            db, game_type=game_type, period=period, limit=limit, offset=offset
        )
    except LeaderboardError as e:
        raise http_error(e)
    return TopGamesOut(game_type=game_type.strip(), period=period, limit=limit, offset=offset, rows=rows)


@router.get("/{game_type}/players/{player_id}", response_model=UserGameStatsOut | None)
def player_game_stats(
    game_type: str,
    player_id: str,
    period: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return top_games_service.get_user_game_stats(
            db, player_id=player_id, game_type=game_type, period=period
        )
    except LeaderboardError as e:
        raise http_error(e)


@router.get("/{game_type}/predict", response_model=RankPredictionOut)
def predict(
    game_type: str,
    score: int = Query(..., ge=0),
    period: str = Query(default="weekly"),
    db: Session = Depends(get_db),
):
    try:
        return top_games_service.predict_rank(db, game_type=game_type, score=score, period=period)
    except LeaderboardError as e:
        raise http_error(e)

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

Period = Literal["daily", "weekly", "monthly", "alltime"]
SortBy = Literal["best", "total"]


class GameResultIn(BaseModel):
    game_id: str = Field(..., min_length=1, max_length=128)
    player_id: str | None = None
    guest_id: str | None = None
    game_type: str = Field(..., min_length=1, max_length=64)
    total_score: int = Field(..., ge=0)
    average_score: float = Field(..., ge=0)
    total_distance: float = Field(..., ge=0)

    @model_validator(mode="after")
    def exactly_one_identity(self):
        if bool(self.player_id) == bool(self.guest_id):
            raise ValueError("exactly one of player_id or guest_id must be set")
        return self


class GameResultRecordedOut(BaseModel):
    game_id: str
    recorded: bool


class RankingRow(BaseModel):
    # rank: persisted best-score rank; position: place in this listing's order
    rank: int | None
    position: int
    player_id: str
    player_name: str
    player_image: str | None
    total_score: int
    total_games: int
    average_score: float
    best_score: int


class RankingOut(BaseModel):
    game_type: str
    period: Period
    period_key: str
    sort_by: SortBy
    limit: int
    offset: int
    rows: list[RankingRow]


class UserRankOut(BaseModel):
    rank: int | None
    period_key: str
    total_score: int
    total_games: int
    average_score: float
    best_score: int


class GameTypeBreakdown(BaseModel):
    games: int
    best_score: int
    total_score: int
    average_score: float


class UserStatsOut(BaseModel):
    player_id: str
    total_games: int
    best_score: int
    total_score: int
    average_score: float
    best_rank: int | None
    game_types: dict[str, GameTypeBreakdown] = Field(default_factory=dict)


class GuestMigrationIn(BaseModel):
    guest_id: str = Field(..., min_length=1)
    player_id: str = Field(..., min_length=1)


class GuestMigrationOut(BaseModel):
    guest_id: str
    player_id: str
    migrated_games: int
    stats: UserStatsOut


class RepairOut(BaseModel):
    ranking_partitions: int
    duel_partitions: int
    rebuilt_results: int | None = None


class TopGameRow(BaseModel):
    rank: int
    game_id: str
    player_id: str | None
    player_name: str
    player_image: str | None
    total_score: int
    completed_at: datetime


class TopGamesOut(BaseModel):
    game_type: str
    period: Period | None
    limit: int
    offset: int
    rows: list[TopGameRow]


class UserGameStatsOut(BaseModel):
    games_count: int
    best_score: int
    total_score: int
    rank: int
    total_games_count: int


class RankPredictionOut(BaseModel):
    game_type: str
    period: Period
    score: int
    predicted_rank: int
    total_games: int

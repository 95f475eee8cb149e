from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class DuelSideIn(BaseModel):
    player_id: str = Field(..., min_length=1)
    game_id: str = Field(..., min_length=1)
    score: int = Field(..., ge=0)
    time: int = Field(..., ge=0, description="Total time in seconds")


class DuelCompleteIn(BaseModel):
    duel_seed: str = Field(..., min_length=1, max_length=64)
    game_type: str = Field(..., min_length=1, max_length=64)
    challenger: DuelSideIn
    accepter: DuelSideIn

    @model_validator(mode="after")
    def distinct_players(self):
        if self.challenger.player_id == self.accepter.player_id:
            raise ValueError("challenger and accepter must be different players")
        return self


class DuelCompleteOut(BaseModel):
    duel_id: str
    winner_id: str
    loser_id: str
    points_earned: int
    created: bool


class DuelLeaderboardRow(BaseModel):
    rank: int | None
    player_id: str
    player_name: str
    player_image: str | None
    wins: int
    losses: int
    total_duels: int
    win_rate: float
    duel_points: int


class DuelLeaderboardOut(BaseModel):
    game_type: str
    limit: int
    offset: int
    rows: list[DuelLeaderboardRow]


class DuelStatsOut(BaseModel):
    wins: int
    losses: int
    total_duels: int
    win_rate: float
    duel_points: int
    rank: int | None


class DuelOut(BaseModel):
    id: str
    duel_seed: str
    game_type: str
    challenger_id: str
    challenger_name: str
    challenger_score: int
    challenger_time: int
    accepter_id: str
    accepter_name: str
    accepter_score: int
    accepter_time: int
    winner_id: str
    winner_name: str
    points_earned: int
    completed_at: datetime


class DuelHistoryRow(BaseModel):
    id: str
    duel_seed: str
    game_type: str
    opponent_id: str
    opponent_name: str
    opponent_image: str | None
    my_score: int
    my_time: int
    opponent_score: int
    opponent_time: int
    is_winner: bool
    my_role: Literal["challenger", "accepter"]
    completed_at: datetime


class DuelHistoryOut(BaseModel):
    player_id: str
    game_type: str | None
    limit: int
    offset: int
    next_offset: int | None
    rows: list[DuelHistoryRow]

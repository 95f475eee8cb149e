from geoboard.models.user import User
from geoboard.models.game_result import GameResult
from geoboard.models.ranking_aggregate import RankingAggregate
from geoboard.models.duel import DuelResult, DuelStat

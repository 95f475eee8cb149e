from fastapi import APIRouter
from geoboard.modules.duels import api as duels
from geoboard.modules.games import api as games
from geoboard.modules.rankings import api as rankings

router = APIRouter()
router.include_router(rankings.router, prefix="/rankings", tags=["rankings"])
router.include_router(games.router, prefix="/games", tags=["games"])
router.include_router(duels.router, prefix="/duels", tags=["duels"])

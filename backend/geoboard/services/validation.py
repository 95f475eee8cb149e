import re

from geoboard.core.config import settings
from geoboard.services.errors import InvalidInputError

OVERALL = "overall"
SORT_MODES = ("best", "total")

_GAME_TYPE_RE = re.compile(r"^[a-z0-9][a-z0-9_:\-]{0,63}$")


def validate_game_type(game_type: str, *, allow_overall: bool = False) -> str:
    gt = (game_type or "").strip()
    if gt == OVERALL:
        if not allow_overall:
            raise InvalidInputError("'overall' is derived and cannot be recorded directly")
        return gt
    if not _GAME_TYPE_RE.match(gt):
        raise InvalidInputError(f"invalid game type: {game_type!r}")
    allowed = settings.allowed_game_types()
    if allowed and gt not in allowed:
        raise InvalidInputError(f"unknown game type: {gt}")
    return gt


def validate_page(limit: int, offset: int) -> tuple[int, int]:
    if limit < 1 or limit > settings.MAX_PAGE_SIZE:
        raise InvalidInputError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")
    if offset < 0:
        raise InvalidInputError("offset must be >= 0")
    return limit, offset


def validate_sort_by(sort_by: str) -> str:
    if sort_by not in SORT_MODES:
        raise InvalidInputError("sort_by must be best|total")
    return sort_by


def require_id(value: str | None, field: str) -> str:
    out = (value or "").strip()
    if not out:
        raise InvalidInputError(f"{field} is required")
    return out

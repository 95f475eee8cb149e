from __future__ import annotations

from collections.abc import Iterable

import sqlalchemy as sa
from sqlalchemy.orm import Session

from geoboard.models.user import User
from geoboard.services.errors import InvalidInputError

ANONYMOUS_NAME = "Anonym"


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def display_name(name: str | None, nickname: str | None = None) -> str:
    if nickname:
        return nickname
    if name and name.strip():
        parts = name.split()
        if len(parts) >= 2:
            return f"{_capitalize(parts[0])} {parts[-1][0].upper()}."
        return _capitalize(parts[0])
    return ANONYMOUS_NAME


def load_players(db: Session, player_ids: Iterable[str | None]) -> dict[str, User]:
    ids = sorted({pid for pid in player_ids if pid})
    if not ids:
        return {}
    rows = db.execute(sa.select(User).where(User.id.in_(ids))).scalars().all()
    return {u.id: u for u in rows}


def player_display_name(players: dict[str, User], player_id: str | None, fallback: str | None = None) -> str:
    user = players.get(player_id) if player_id else None
    if user is not None:
        return display_name(user.name, user.nickname)
    return fallback or ANONYMOUS_NAME


def require_player(db: Session, player_id: str) -> User:
    user = db.get(User, player_id)
    if user is None:
        raise InvalidInputError(f"unknown player: {player_id}")
    return user

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from geoboard.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuelCompletedEvent:
    challenger_id: str
    winner_id: str
    accepter_name: str
    duel_id: str
    game_type: str


DuelListener = Callable[[DuelCompletedEvent], None]

_listeners: list[DuelListener] = []


def register_duel_listener(listener: DuelListener) -> None:
    _listeners.append(listener)


def unregister_duel_listener(listener: DuelListener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def _log_duel_completed(event: DuelCompletedEvent) -> None:
    logger.info(
        "duel completed: challenger=%s winner=%s accepter=%s",
        event.challenger_id,
        event.winner_id,
        event.accepter_name,
        extra={"duel_id": event.duel_id, "game_type": event.game_type},
    )


register_duel_listener(_log_duel_completed)


def notify_duel_completed(event: DuelCompletedEvent) -> None:
    """Fan the event out to in-app/email collaborators. Never raises."""
    if not settings.DUEL_NOTIFICATIONS_ENABLED:
        return
    for listener in list(_listeners):
        try:
            listener(event)
        except Exception:
            logger.exception(
                "duel notification failed",
                extra={"duel_id": event.duel_id, "player_id": event.challenger_id},
            )

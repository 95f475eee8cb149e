from __future__ import annotations

from dataclasses import dataclass

from geoboard.services.errors import IdentityError


@dataclass(frozen=True)
class AccountIdentity:
    player_id: str


@dataclass(frozen=True)
class GuestIdentity:
    guest_id: str


Identity = AccountIdentity | GuestIdentity


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def identity_from(player_id: str | None, guest_id: str | None) -> Identity:
    player = _clean(player_id)
    guest = _clean(guest_id)
    if player and guest:
        raise IdentityError("exactly one of player_id or guest_id must be set, got both")
    if player:
        return AccountIdentity(player)
    if guest:
        return GuestIdentity(guest)
    raise IdentityError("exactly one of player_id or guest_id must be set, got neither")

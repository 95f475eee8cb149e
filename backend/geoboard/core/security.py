from datetime import datetime, timedelta, timezone

from jose import jwt

from geoboard.core.config import settings

ALGO = "HS256"

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def create_service_token(caller: str) -> str:
    exp = now_utc() + timedelta(minutes=settings.SERVICE_JWT_MINUTES)
    payload = {"sub": caller, "type": "service", "exp": exp}
    return jwt.encode(payload, settings.SERVICE_JWT_SECRET, algorithm=ALGO)

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SERVICE_JWT_SECRET, algorithms=[ALGO])

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from geoboard.core.security import decode_token
from geoboard.services.errors import InvalidInputError, LeaderboardError, NotFoundError

bearer = HTTPBearer()


def require_service_caller(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    """Internal callers only: game session, duel session, account linking."""
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("type") != "service":
        raise HTTPException(status_code=401, detail="Invalid token type")
    caller = payload.get("sub")
    if not caller:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    return caller


def http_error(exc: LeaderboardError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(404, str(exc))
    if isinstance(exc, InvalidInputError):
        return HTTPException(400, str(exc))
    return HTTPException(500, "Leaderboard error")

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import HTTPException

from skillmatch.config import ACCESS_TOKEN_TTL_MINUTES, JWT_SECRET

ALGORITHM = "HS256"


def create_access_token(user_id: str, ttl_minutes: int | None = None, secret: str | None = None) -> str:
    key = secret or JWT_SECRET
    if not key:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=ttl_minutes or ACCESS_TOKEN_TTL_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any]:
    key = secret or JWT_SECRET
    if not key:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    try:
        payload = jwt.decode(token, key, algorithms=[ALGORITHM])
        if not isinstance(payload, dict):
            raise HTTPException(status_code=401, detail="Invalid token")
        return payload
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="Token expired") from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

# app/api/deps.py
from functools import lru_cache
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.domain.errors import StoreError
from app.services.lock_service import LockService
from app.utils.settings import JWT_SECRET, JWT_ALGORITHM

security = HTTPBearer(auto_error=False)


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


def decode_token(token: str) -> Dict[str, Any]:
    #tokeny wystawia zewnetrzny serwis auth, tu tylko weryfikacja
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_claims(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> Dict[str, Any]:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return decode_token(credentials.credentials)


def get_current_user_id(claims: Dict[str, Any] = Depends(get_claims)) -> int:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject")


def require_admin(claims: Dict[str, Any] = Depends(get_claims)) -> Dict[str, Any]:
    if not claims.get("is_admin"):
        raise HTTPException(status_code=403, detail="Admin access required")
    return claims


def to_http(e: StoreError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={"error": e.message, "details": e.details},
    )

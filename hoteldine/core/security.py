import enum
import time
import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from hoteldine.core.config import settings

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

class Role(str, enum.Enum):
    USER = "user"
    HOTEL = "hotel"
    RESTAURANT = "restaurant"
    DELIVERY = "delivery"
    ADMIN = "admin"

class Principal(BaseModel):
    id: str
    role: Role

def create_access_token(subject: str, role: Role, expires_in: Optional[int] = None) -> str:
    now = int(time.time())
    ttl = expires_in if expires_in is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    payload = {"sub": str(subject), "role": role.value, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        return Principal(id=payload["sub"], role=Role(payload["role"]))
    except (KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")

async def get_current_principal(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return decode_access_token(credentials.credentials)

def require_role(*roles: Role):
    """Dependency factory: resolves the caller and checks their role."""
    async def _dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{principal.role.value}' is not allowed here",
            )
        return principal
    return _dependency

# ticketing/utils/auth_utils.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel

from ticketing import config

ACCESS_TOKEN_EXPIRE_MINUTES = 30


class CurrentUser(BaseModel):
    uid: str
    email: Optional[str] = None


def create_access_token(data: dict, expires_delta: timedelta = None):
    """Mint a token the way the identity provider does (local tooling and tests)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta if expires_delta else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.AUTH_JWT_SECRET, algorithm=config.AUTH_JWT_ALGORITHM)


async def get_current_user(request: Request) -> CurrentUser:
    """Extract the identity provider's JWT from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header.split(" ")[1]

    try:
        payload = jwt.decode(token, config.AUTH_JWT_SECRET, algorithms=[config.AUTH_JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid: str = payload.get("sub")
    if uid is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = payload.get("email")
    return CurrentUser(uid=uid, email=email.lower() if email else None)


async def get_optional_user(request: Request) -> Optional[CurrentUser]:
    """Guest checkout is allowed; a token only attaches the buyer id."""
    if not request.headers.get("Authorization"):
        return None
    return await get_current_user(request)

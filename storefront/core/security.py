"""Security utilities"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError

from .config import settings


def create_access_token(subject: str, role: str = "user", email: Optional[str] = None,
                        expires_minutes: int = 30) -> str:
    """Create access token (tokens are normally minted by the auth service)"""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)

    to_encode = {"exp": expire, "sub": subject, "role": role}
    if email:
        to_encode["email"] = email
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify token and return its claims"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload

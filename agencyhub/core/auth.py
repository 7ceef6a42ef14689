"""
JWT session token utilities
"""

from datetime import datetime, timedelta
from jose import JWTError, jwt
from typing import Dict, Optional
from agencyhub.core.config import get_settings

settings = get_settings()


def create_access_token(
    uid: str,
    email: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT session token carrying the identity claims only"""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": uid,
        "email": email,
        "exp": expire,
        "iat": datetime.utcnow(),
    }

    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and validate JWT token"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        return None


def verify_token(token: str) -> Optional[Dict]:
    """Verify token and return its identity claims if valid"""
    payload = decode_access_token(token)
    if payload is None or not payload.get("sub"):
        return None
    return {"uid": payload["sub"], "email": payload.get("email", "")}

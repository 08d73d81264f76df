# backoffice/core/security.py
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from backoffice.core.config import settings
from backoffice.schemas.user import TokenData

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


# Password hashing
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _encode(data: dict, token_type: str, expires: timedelta) -> str:
    payload = dict(data)
    payload.update({"exp": datetime.utcnow() + expires, "type": token_type})
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# Create Access Token
def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    return _encode(
        data,
        ACCESS,
        timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


# Create Refresh Token
def create_refresh_token(data: dict, expires_days: int = 7) -> str:
    return _encode(data, REFRESH, timedelta(days=expires_days))


def _decode(token: str, token_type: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return TokenData()
    # a refresh token is not an access token and vice versa
    if payload.get("type") != token_type:
        return TokenData()
    return TokenData(username=payload.get("sub"), role=payload.get("role"))


def decode_access_token(token: str) -> TokenData:
    return _decode(token, ACCESS)


def decode_refresh_token(token: str) -> TokenData:
    return _decode(token, REFRESH)

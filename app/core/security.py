"""Security utilities for password hashing and session tokens."""

from __future__ import annotations

from typing import Any

from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings
from app.shared.exceptions import AuthenticationException
from app.shared.utils import utc_now

settings = get_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_bcrypt_rounds,
)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/identity/auth/login",
    auto_error=False,
)

SESSION_TOKEN_TYPE = "session"


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify plain password against hashed one."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised or malformed hash: treat as a mismatch.
        return False


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    return pwd_context.hash(password)


def is_password_hash(value: str) -> bool:
    """Return True if value is a hash produced by a known scheme."""
    return pwd_context.identify(value) is not None


def create_session_token(session_id: str, **claims: Any) -> str:
    """Sign a tab-scoped session token. It carries no expiry."""
    payload: dict[str, Any] = {
        "sub": session_id,
        "type": SESSION_TOKEN_TYPE,
        "iat": int(utc_now().timestamp()),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> str:
    """Validate session token and return its session id."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationException("Invalid session token") from exc

    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise AuthenticationException("Invalid token type")
    session_id = payload.get("sub")
    if not session_id:
        raise AuthenticationException("Session token subject is missing")
    return str(session_id)


def dummy_verify() -> None:
    """Run a throwaway hash check with the same cost as a real one."""
    pwd_context.dummy_verify()

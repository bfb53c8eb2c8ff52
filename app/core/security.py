"""Password hashing and JWT creation/verification for authentication."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import bcrypt
import jwt

from app.core.config import settings


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    cost = rounds if rounds is not None else settings.BCRYPT_ROUNDS
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash (bcrypt's own constant-time compare)."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    sub: str | int,
    email: str,
    role: str,
    expires_minutes: int | None = None,
) -> str:
    """Create a JWT access token with sub (user id), email, role, iat, exp and a unique jti."""
    now = datetime.now(UTC)
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRE_MINUTES
    payload: dict[str, Any] = {
        "sub": str(sub),
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of verifying a token: ok (with payload), expired, or invalid."""

    status: Literal["ok", "expired", "invalid"]
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def verify_access_token(token: str) -> TokenVerification:
    """
    Verify signature and expiry of a JWT.
    Never raises for bad tokens; the failure reason is carried in the result.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        return TokenVerification(status="expired")
    except jwt.PyJWTError:
        return TokenVerification(status="invalid")
    return TokenVerification(status="ok", payload=payload)

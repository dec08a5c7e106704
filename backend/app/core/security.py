"""JWT token management and password hashing utilities."""

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from app.config import settings
from app.models.enums import TokenType, UserRole


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with configured rounds."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS),
    ).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def token_lifetime(token_type: TokenType) -> timedelta:
    if token_type is TokenType.ACCESS:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    if token_type is TokenType.REFRESH:
        return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)


def create_jwt(
    user_id: uuid.UUID,
    role: UserRole,
    token_type: TokenType,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Create a signed JWT. Returns (token, expires_at)."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or token_lifetime(token_type))
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": token_type.value,
        "iat": now,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, expire


def decode_jwt(token: str) -> dict:
    """Decode and validate a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
    )


def generate_reset_token() -> str:
    """Opaque URL-safe token for password reset links."""
    return secrets.token_urlsafe(48)


def hash_token(token: str) -> str:
    """Create a SHA-256 hash of a token for storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

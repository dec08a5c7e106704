"""Authentication service: signup, login, token issuance/revocation, password reset."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.security import (
    create_jwt,
    decode_jwt,
    generate_reset_token,
    hash_password,
    hash_token,
    token_lifetime,
    verify_password,
)
from app.models.enums import TokenType, UserRole
from app.models.user import Token, User
from app.tasks.email import send_password_reset_email

logger = logging.getLogger(__name__)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime, seconds


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def signup(
        self, email: str, password: str, name: str
    ) -> tuple[User, TokenPair] | None:
        """Register a student account. Returns None if the email is taken."""
        if await self.get_user_by_email(email) is not None:
            return None

        user = User(
            id=uuid.uuid4(),
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=UserRole.STUDENT,
        )
        self.db.add(user)
        await self.db.flush()

        logger.info("User %s signed up", user.id)
        return user, await self.issue_token_pair(user)

    async def authenticate_user(self, email: str, password: str) -> User | None:
        """Validate email/password and return user or None."""
        user = await self.get_user_by_email(email)
        if user is None:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def login(self, email: str, password: str) -> tuple[User, TokenPair] | None:
        user = await self.authenticate_user(email, password)
        if user is None:
            logger.info("Failed login attempt for %s", email)
            return None
        return user, await self.issue_token_pair(user)

    async def _store_token(
        self, user_id: uuid.UUID, token: str, token_type: TokenType, expires_at: datetime
    ) -> None:
        self.db.add(Token(
            id=uuid.uuid4(),
            user_id=user_id,
            token_hash=hash_token(token),
            type=token_type,
            expires_at=expires_at,
        ))

    async def issue_token_pair(self, user: User) -> TokenPair:
        """Sign an access/refresh pair and record both in the token table."""
        access_token, access_exp = create_jwt(user.id, user.role, TokenType.ACCESS)
        refresh_token, refresh_exp = create_jwt(user.id, user.role, TokenType.REFRESH)
        await self._store_token(user.id, access_token, TokenType.ACCESS, access_exp)
        await self._store_token(user.id, refresh_token, TokenType.REFRESH, refresh_exp)
        await self.db.flush()
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(token_lifetime(TokenType.ACCESS).total_seconds()),
        )

    async def _find_live_token(self, token: str, token_type: TokenType) -> Token | None:
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            select(Token).where(
                Token.token_hash == hash_token(token),
                Token.type == token_type,
                Token.revoked_at.is_(None),
                Token.expires_at > now,
            )
        )
        return result.scalar_one_or_none()

    async def verify_token(self, token: str, expected_type: TokenType) -> User | None:
        """Return the token's user if the JWT verifies and its row is live."""
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            return None
        if payload.get("type") != expected_type.value:
            return None

        row = await self._find_live_token(token, expected_type)
        if row is None:
            return None

        try:
            user_id = uuid.UUID(payload["sub"])
        except (KeyError, ValueError):
            return None
        if user_id != row.user_id:
            return None
        return await self.db.get(User, user_id)

    async def refresh(self, refresh_token: str) -> tuple[User, TokenPair] | None:
        """Rotate a refresh token: revoke it and issue a fresh pair."""
        user = await self.verify_token(refresh_token, TokenType.REFRESH)
        if user is None:
            return None
        await self.revoke_token(refresh_token)
        return user, await self.issue_token_pair(user)

    async def revoke_token(self, token: str) -> None:
        """Revoke a specific token. Unknown tokens are ignored."""
        await self.db.execute(
            update(Token)
            .where(Token.token_hash == hash_token(token), Token.revoked_at.is_(None))
            .values(revoked_at=datetime.now(timezone.utc))
        )

    async def revoke_all_tokens(self, user_id: uuid.UUID) -> None:
        """Revoke every outstanding token of a user (e.g., on password change)."""
        await self.db.execute(
            update(Token)
            .where(Token.user_id == user_id, Token.revoked_at.is_(None))
            .values(revoked_at=datetime.now(timezone.utc))
        )

    async def initiate_password_reset(self, email: str) -> None:
        """Generate a password reset token and email a reset link.

        Does nothing visible if the email is not found (prevents enumeration).
        """
        user = await self.get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email: %s", email)
            return

        raw_token = generate_reset_token()
        expires_at = datetime.now(timezone.utc) + token_lifetime(TokenType.PASSWORD_RESET)
        await self._store_token(user.id, raw_token, TokenType.PASSWORD_RESET, expires_at)
        await self.db.flush()

        reset_url = f"{settings.CLIENT_URL.rstrip('/')}/reset-password?token={raw_token}"
        try:
            send_password_reset_email.delay(user.email, reset_url)
        except Exception:
            logger.exception("Failed to queue password reset email to %s", email)

    async def complete_password_reset(self, token: str, new_password: str) -> bool:
        """Validate reset token and set new password. All sessions are revoked."""
        row = await self._find_live_token(token, TokenType.PASSWORD_RESET)
        if row is None:
            return False

        user = await self.db.get(User, row.user_id)
        if user is None:
            return False

        user.password_hash = hash_password(new_password)
        await self.revoke_all_tokens(user.id)
        logger.info("Password reset completed for user %s", user.id)
        return True

"""User and issued-token models."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, BaseModel, UUIDPrimaryKeyMixin, enum_column_type, utcnow
from app.models.enums import TokenType, UserRole


class User(BaseModel):
    __tablename__ = "user"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        enum_column_type(UserRole, "user_role"),
        default=UserRole.STUDENT,
        server_default=UserRole.STUDENT.value,
        nullable=False,
    )

    # Relationships
    tokens: Mapped[list["Token"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_user_role", "role"),
        Index("ix_user_created_at", "created_at"),
    )


class Token(UUIDPrimaryKeyMixin, Base):
    """Every issued access, refresh and password-reset token.

    A token is only honoured while its row exists, is unexpired and has no
    revoked_at; revoking sets revoked_at (the denylist).
    """

    __tablename__ = "token"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    type: Mapped[TokenType] = mapped_column(
        enum_column_type(TokenType, "token_type"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="tokens")

    __table_args__ = (
        Index("ix_token_user_id", "user_id"),
    )

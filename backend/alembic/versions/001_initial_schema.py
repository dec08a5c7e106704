"""Initial schema - users, issued tokens and courses.

Revision ID: 001
Revises: None
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM("admin", "student", name="user_role", create_type=False)
token_type = postgresql.ENUM("access", "refresh", "password_reset", name="token_type", create_type=False)
course_level = postgresql.ENUM("beginner", "intermediate", "advanced", name="course_level", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    user_role.create(bind, checkfirst=True)
    token_type.create(bind, checkfirst=True)
    course_level.create(bind, checkfirst=True)

    # --- User & Auth ---

    op.create_table(
        "user",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", user_role, server_default="student", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_user_role", "user", ["role"])
    op.create_index("ix_user_created_at", "user", ["created_at"])

    op.create_table(
        "token",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id", postgresql.UUID(as_uuid=True),
            sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), unique=True, nullable=False),
        sa.Column("type", token_type, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_token_user_id", "token", ["user_id"])

    # --- Courses ---

    op.create_table(
        "course",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), unique=True, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("level", course_level, server_default="beginner", nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_free", sa.Boolean, server_default="false", nullable=False),
        sa.Column("is_published", sa.Boolean, server_default="false", nullable=False),
        sa.Column(
            "instructor_id", postgresql.UUID(as_uuid=True),
            sa.ForeignKey("user.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_course_level", "course", ["level"])
    op.create_index("ix_course_is_published", "course", ["is_published"])


def downgrade() -> None:
    op.drop_table("course")
    op.drop_table("token")
    op.drop_table("user")

    bind = op.get_bind()
    course_level.drop(bind, checkfirst=True)
    token_type.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)

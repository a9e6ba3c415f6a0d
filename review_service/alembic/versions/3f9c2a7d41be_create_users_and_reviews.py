"""Initial Alembic migration: create ``users`` and ``reviews`` tables.

Revision ID: 3f9c2a7d41be
Revises:
Create Date: 2026-10-18 19:52:07.412305

Identity uniqueness and the rating range live in named table constraints so
the database enforces them atomically on insert.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f9c2a7d41be"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USERS = "users"
REVIEWS = "reviews"
IDX_USERS_ID = op.f("ix_users_id")
IDX_REVIEWS_ID = op.f("ix_reviews_id")
IDX_REVIEWS_CREATED_AT = op.f("ix_reviews_created_at")


def upgrade() -> None:
    """Apply the migration: create both tables and their indexes."""
    op.create_table(
        USERS,
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index(IDX_USERS_ID, USERS, ["id"], unique=False)

    op.create_table(
        REVIEWS,
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_reviews_user_id"),
        sa.CheckConstraint(
            "rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"
        ),
    )
    op.create_index(IDX_REVIEWS_ID, REVIEWS, ["id"], unique=False)
    op.create_index(IDX_REVIEWS_CREATED_AT, REVIEWS, ["created_at"], unique=False)


def downgrade() -> None:
    """Revert the migration: drop ``reviews`` first, it references ``users``."""
    op.drop_index(IDX_REVIEWS_CREATED_AT, table_name=REVIEWS)
    op.drop_index(IDX_REVIEWS_ID, table_name=REVIEWS)
    op.drop_table(REVIEWS)
    op.drop_index(IDX_USERS_ID, table_name=USERS)
    op.drop_table(USERS)

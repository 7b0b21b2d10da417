"""Initial schema: users, swipes, matches, messages.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(128), nullable=False),
        sa.Column("age", sa.Integer, nullable=False),
        sa.Column("bio", sa.Text, server_default="", nullable=False),
        sa.Column("avatar_url", sa.String, nullable=True),
        sa.Column("location_lat", sa.Float, nullable=True),
        sa.Column("location_lng", sa.Float, nullable=True),
        sa.Column(
            "interests",
            sa.JSON().with_variant(postgresql.JSONB, "postgresql"),
            nullable=False,
            comment="Array of interest tags",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # ── 2. swipes ───────────────────────────────────────────────────
    op.create_table(
        "swipes",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "swiper_id",
            sa.Uuid,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "target_id",
            sa.Uuid,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "decision",
            sa.String(8),
            nullable=False,
            comment="like / pass",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("swiper_id", "target_id", name="uq_swipe_pair"),
        sa.CheckConstraint("swiper_id <> target_id", name="ck_swipe_not_self"),
        sa.CheckConstraint("decision IN ('like', 'pass')", name="ck_swipe_decision"),
    )
    op.create_index("ix_swipes_target_id", "swipes", ["target_id"])

    # ── 3. matches ──────────────────────────────────────────────────
    op.create_table(
        "matches",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "user_a_id",
            sa.Uuid,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_b_id",
            sa.Uuid,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "matched_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "last_message_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Last-activity marker",
        ),
        sa.UniqueConstraint("user_a_id", "user_b_id", name="uq_match_pair"),
        sa.CheckConstraint("user_a_id < user_b_id", name="ck_match_pair_order"),
    )
    op.create_index("ix_matches_user_b_id", "matches", ["user_b_id"])

    # ── 4. messages ─────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "match_id",
            sa.Uuid,
            sa.ForeignKey("matches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Uuid,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("image_url", sa.String, nullable=True),
        sa.Column(
            "is_read",
            sa.Boolean,
            server_default=sa.false(),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_messages_match_created",
        "messages",
        ["match_id", "created_at"],
    )


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_messages_match_created", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_matches_user_b_id", table_name="matches")
    op.drop_table("matches")

    op.drop_index("ix_swipes_target_id", table_name="swipes")
    op.drop_table("swipes")

    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

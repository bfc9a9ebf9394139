"""initial schema

Revision ID: 5c1e2a7b9d04
Revises:
Create Date: 2026-10-16 09:12:44.318205

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a7b9d04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create identity, profile and messaging tables."""
    op.create_table(
        "auth_identity",
        sa.Column("uid", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("provider", sa.String(length=16), nullable=False),
        sa.Column("google_sub", sa.String(length=255), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("token_version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("uid"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("google_sub"),
    )
    op.create_table(
        "user_profile",
        sa.Column("uid", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("profile_pic", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("uid"),
    )
    op.create_table(
        "username_index",
        sa.Column("username_lower", sa.String(length=20), nullable=False),
        sa.Column("uid", sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint("username_lower"),
        sa.UniqueConstraint("uid"),
    )
    op.create_table(
        "chat",
        sa.Column("id", sa.String(length=160), nullable=False),
        sa.Column("member_low", sa.String(length=64), nullable=False),
        sa.Column("member_high", sa.String(length=64), nullable=False),
        sa.Column("members", sa.JSON(), nullable=False),
        sa.Column("last_message", sa.Text(), nullable=True),
        sa.Column("last_message_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chat_member_low", "chat", ["member_low"])
    op.create_index("ix_chat_member_high", "chat", ["member_high"])
    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("channel_id", sa.String(length=160), nullable=False),
        sa.Column("sender_id", sa.String(length=64), nullable=False),
        sa.Column("sender_username", sa.String(length=20), nullable=False),
        sa.Column("sender_profile_pic", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("receiver_id", sa.String(length=64), nullable=True),
        sa.Column("seen", sa.Boolean(), nullable=True),
        sa.Column("reply_to", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_message_channel_timestamp", "message", ["channel_id", "timestamp", "id"]
    )
    op.create_table(
        "message_reaction",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("emoji", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["message_id"], ["message.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("message_id", "emoji", "user_id"),
    )
    op.create_index("ix_message_reaction_message_id", "message_reaction", ["message_id"])


def downgrade() -> None:
    """Drop every table created in upgrade."""
    op.drop_index("ix_message_reaction_message_id", table_name="message_reaction")
    op.drop_table("message_reaction")
    op.drop_index("ix_message_channel_timestamp", table_name="message")
    op.drop_table("message")
    op.drop_index("ix_chat_member_high", table_name="chat")
    op.drop_index("ix_chat_member_low", table_name="chat")
    op.drop_table("chat")
    op.drop_table("username_index")
    op.drop_table("user_profile")
    op.drop_table("auth_identity")

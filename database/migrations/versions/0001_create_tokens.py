"""create tokens table

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
import sqlmodel

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("address", sqlmodel.AutoString(length=64), nullable=False),
        sa.Column("name", sqlmodel.AutoString(length=128), nullable=False),
        sa.Column("symbol", sqlmodel.AutoString(length=32), nullable=False),
        sa.Column("description", sqlmodel.AutoString(), nullable=True),
        sa.Column("image_url", sqlmodel.AutoString(length=512), nullable=True),
        sa.Column("website", sqlmodel.AutoString(length=512), nullable=True),
        sa.Column("twitter", sqlmodel.AutoString(length=512), nullable=True),
        sa.Column("telegram", sqlmodel.AutoString(length=512), nullable=True),
        sa.Column("uri", sqlmodel.AutoString(length=512), nullable=True),
        sa.Column("price_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("market_cap", sa.Float(), nullable=False, server_default="0"),
        sa.Column("volume_24h", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tokens_address", "tokens", ["address"], unique=True)
    op.create_index("ix_tokens_created_at", "tokens", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_tokens_created_at", table_name="tokens")
    op.drop_index("ix_tokens_address", table_name="tokens")
    op.drop_table("tokens")

"""create license_keys

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "license_keys",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("key", sa.String(19), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("seller_id", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_usage", sa.Integer(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_license_keys_key", "license_keys", ["key"], unique=True)
    op.create_index("ix_license_keys_seller_id", "license_keys", ["seller_id"])
    op.create_index("ix_license_keys_created_at", "license_keys", ["created_at"])
    op.create_index(
        "ix_license_keys_seller_created", "license_keys", ["seller_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_license_keys_seller_created", table_name="license_keys")
    op.drop_index("ix_license_keys_created_at", table_name="license_keys")
    op.drop_index("ix_license_keys_seller_id", table_name="license_keys")
    op.drop_index("ix_license_keys_key", table_name="license_keys")
    op.drop_table("license_keys")

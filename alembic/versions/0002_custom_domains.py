"""Add customdomains table

Revision ID: 0002_custom_domains
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_custom_domains"
down_revision = "0001_users_subscriptions_content"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customdomains",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("subscription_id", sa.Uuid(as_uuid=True), sa.ForeignKey("subscriptions.id"), nullable=True),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="PENDING"),
        sa.Column("verification_code", sa.String(64), nullable=False, unique=True),
        sa.Column("cname_target", sa.String(255), nullable=False),
        sa.Column("verification_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_customdomains_id", "customdomains", ["id"])
    op.create_index("ix_customdomains_user_id", "customdomains", ["user_id"])
    # The proxy looks up every non-platform request by exact hostname.
    op.create_index("ix_customdomains_domain", "customdomains", ["domain"], unique=True)


def downgrade() -> None:
    op.drop_table("customdomains")

"""Admin access: IP allowlist and admin accounts.

Revision ID: 004_admin_access
Revises: 003_mystery_challenge
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "004_admin_access"
down_revision: str | None = "003_mystery_challenge"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create whitelisted_ips and admin_users."""
    op.create_table(
        "whitelisted_ips",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("ip_address", sa.String(64), nullable=False),
        sa.Column("description", sa.String(256), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    # Entries must parse as an address or a network.
    op.execute(
        "ALTER TABLE whitelisted_ips ADD CONSTRAINT ck_whitelisted_ips_ip_address "
        "CHECK (ip_address::cidr IS NOT NULL)"
    )

    op.create_table(
        "admin_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("role", sa.String(16), server_default="admin", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("email", name="admin_users_email_key"),
    )
    op.execute(
        "ALTER TABLE admin_users ADD CONSTRAINT ck_admin_users_role "
        "CHECK (role IN ('admin', 'editor'))"
    )


def downgrade() -> None:
    op.drop_table("admin_users")
    op.drop_table("whitelisted_ips")

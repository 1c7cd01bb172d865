"""create tenants, access control, families and bccs tables

Revision ID: 0001_create_ekklesia_tables
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic
revision = "0001_create_ekklesia_tables"
down_revision = None
branch_labels = None
depends_on = None

ROLE_TIERS = (
    "super_admin", "ekklesia_admin", "ekklesia_manager", "ekklesia_user", "tenant_admin", "custom",
)


def timestamps():
    return [
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
    ]


def upgrade():
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("address", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("country", sa.String(100)),
        sa.Column("settings", sa.JSON),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *timestamps(),
    )

    op.create_table(
        "permissions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("display_name", sa.String(150), nullable=False),
        sa.Column("description", sa.String(255)),
        sa.Column("module", sa.String(50)),
        sa.Column("category", sa.String(50)),
        sa.Column("tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE")),
        sa.Column("is_custom", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *timestamps(),
    )
    op.create_index("ix_permissions_module", "permissions", ["module"])
    op.create_index("ix_permissions_tenant_id", "permissions", ["tenant_id"])

    op.create_table(
        "roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255)),
        sa.Column("level", sa.Integer, nullable=False, server_default="5"),
        sa.Column("tier", sa.Enum(*ROLE_TIERS, name="role_tier"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE")),
        sa.Column("is_custom", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime),
        *timestamps(),
    )
    op.create_index("ix_roles_tenant_id", "roles", ["tenant_id"])
    op.create_index("ix_roles_deleted_at", "roles", ["deleted_at"])
    op.create_index(
        "uq_roles_name_tenant",
        "roles",
        ["name", sa.text("coalesce(tenant_id, '')")],
        unique=True,
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255)),
        sa.Column("contact_number", sa.String(50)),
        sa.Column("user_type", sa.Integer),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_primary_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("last_login", sa.DateTime),
        sa.Column("tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE")),
        sa.Column("role_id", sa.String(36), sa.ForeignKey("roles.id", ondelete="SET NULL")),
        sa.Column("deleted_at", sa.DateTime),
        *timestamps(),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_role_id", "users", ["role_id"])
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])

    op.create_table(
        "permission_role",
        sa.Column(
            "permission_id", sa.String(36),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("role_id", sa.String(36), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        *timestamps(),
    )
    op.create_table(
        "permission_user",
        sa.Column(
            "permission_id", sa.String(36),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        *timestamps(),
    )
    op.create_table(
        "role_user",
        sa.Column(
            "role_id", sa.String(36),
            sa.ForeignKey("roles.id", ondelete="CASCADE", onupdate="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"), primary_key=True,
        ),
        *timestamps(),
    )
    op.create_index("ix_role_user_role_id", "role_user", ["role_id"])
    op.create_index("ix_role_user_user_id", "role_user", ["user_id"])

    op.create_table(
        "bccs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("bcc_code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("meeting_place", sa.String(255)),
        sa.Column("meeting_day", sa.String(20)),
        sa.Column("meeting_time", sa.String(10)),
        sa.Column("meeting_frequency", sa.String(30)),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("established_date", sa.Date),
        sa.Column("notes", sa.Text),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("updated_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("deleted_at", sa.DateTime),
        *timestamps(),
        sa.UniqueConstraint("tenant_id", "bcc_code", name="uq_bccs_tenant_code"),
    )
    op.create_index("ix_bccs_tenant_id", "bccs", ["tenant_id"])
    op.create_index("ix_bccs_deleted_at", "bccs", ["deleted_at"])

    op.create_table(
        "families",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("family_code", sa.String(20), nullable=False),
        sa.Column("family_name", sa.String(150), nullable=False),
        sa.Column("head_of_family", sa.String(150)),
        sa.Column("address", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("postal_code", sa.String(20)),
        sa.Column("primary_phone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("bcc_id", sa.String(36), sa.ForeignKey("bccs.id", ondelete="SET NULL")),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("notes", sa.Text),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("updated_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("deleted_at", sa.DateTime),
        *timestamps(),
        sa.UniqueConstraint("tenant_id", "family_code", name="uq_families_tenant_code"),
    )
    op.create_index("ix_families_tenant_id", "families", ["tenant_id"])
    op.create_index("ix_families_bcc_id", "families", ["bcc_id"])
    op.create_index("ix_families_deleted_at", "families", ["deleted_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("changes", postgresql.JSONB, nullable=True),
        sa.Column("event_metadata", postgresql.JSONB, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column("endpoint", sa.String(255), nullable=True),
        sa.Column("timestamp", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("families")
    op.drop_table("bccs")
    op.drop_table("role_user")
    op.drop_table("permission_user")
    op.drop_table("permission_role")
    op.drop_table("users")
    op.drop_index("uq_roles_name_tenant", table_name="roles")
    op.drop_table("roles")
    op.drop_table("permissions")
    op.drop_table("tenants")
    sa.Enum(name="role_tier").drop(op.get_bind(), checkfirst=True)

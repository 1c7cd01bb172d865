"""family members, bcc leaders and bcc capacity

Revision ID: 0002_family_members_and_bcc_leaders
Revises: 0001_create_ekklesia_tables
Create Date: 2026-10-17 15:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic
revision = "0002_family_members_and_bcc_leaders"
down_revision = "0001_create_ekklesia_tables"
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
    ]


def audit_columns():
    return [
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("updated_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("deleted_at", sa.DateTime),
    ]


def upgrade():
    op.add_column("bccs", sa.Column("max_families", sa.Integer, nullable=True))

    sacraments = []
    for sacrament in ("baptism", "first_communion", "confirmation", "marriage"):
        sacraments.append(sa.Column(f"{sacrament}_date", sa.Date))
        sacraments.append(sa.Column(f"{sacrament}_place", sa.String(255)))

    op.create_table(
        "family_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "family_id", sa.String(36), sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("middle_name", sa.String(100)),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date),
        sa.Column("gender", sa.String(10)),
        sa.Column("relationship_to_head", sa.String(20), nullable=False, server_default="other"),
        sa.Column("marital_status", sa.String(20), server_default="single"),
        sa.Column("phone", sa.String(20)),
        sa.Column("email", sa.String(255)),
        sa.Column("is_primary_contact", sa.Boolean, nullable=False, server_default=sa.false()),
        *sacraments,
        sa.Column("marriage_spouse_name", sa.String(255)),
        sa.Column("occupation", sa.String(255)),
        sa.Column("education", sa.String(255)),
        sa.Column("skills_talents", sa.Text),
        sa.Column("notes", sa.Text),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("deceased_date", sa.Date),
        *audit_columns(),
        *timestamps(),
    )
    op.create_index("ix_family_members_family_id", "family_members", ["family_id"])
    op.create_index("ix_family_members_status", "family_members", ["status"])
    op.create_index("ix_family_members_deleted_at", "family_members", ["deleted_at"])

    op.create_table(
        "bcc_leaders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("bcc_id", sa.String(36), sa.ForeignKey("bccs.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "family_member_id",
            sa.String(36),
            sa.ForeignKey("family_members.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(20), nullable=False, server_default="leader"),
        sa.Column("role_description", sa.String(255)),
        sa.Column("appointed_date", sa.Date, nullable=False),
        sa.Column("term_start_date", sa.Date),
        sa.Column("term_end_date", sa.Date),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("leader_phone", sa.String(20)),
        sa.Column("leader_email", sa.String(255)),
        sa.Column("responsibilities", sa.Text),
        sa.Column("notes", sa.Text),
        *audit_columns(),
        *timestamps(),
    )
    op.create_index("ix_bcc_leaders_bcc_id", "bcc_leaders", ["bcc_id"])
    op.create_index("ix_bcc_leaders_family_member_id", "bcc_leaders", ["family_member_id"])
    op.create_index("ix_bcc_leaders_is_active", "bcc_leaders", ["is_active"])
    op.create_index("ix_bcc_leaders_deleted_at", "bcc_leaders", ["deleted_at"])


def downgrade():
    op.drop_table("bcc_leaders")
    op.drop_table("family_members")
    op.drop_column("bccs", "max_families")

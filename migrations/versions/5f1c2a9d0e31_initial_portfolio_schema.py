"""initial_portfolio_schema

Creates the portfolio tracker tables:
  - users                    — team members with organizational tier
  - projects                 — portfolio projects (health, ARR, owners)
  - project_notes            — free-text status notes
  - project_health_history   — one row per health change
  - project_custom_fields    — name/value pairs per project
  - time_entries             — one row per (user, day); negative hours = PTO

Tables created conditionally (IF NOT EXISTS semantics) so the revision can
run against databases that already received them via db.create_all().

Revision ID: 5f1c2a9d0e31
Revises:
Create Date: 2026-10-19 09:12:44.118305
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5f1c2a9d0e31'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Users ─────────────────────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=False),
            sa.Column("last_name", sa.String(length=100), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("tier", sa.Integer(), nullable=False, server_default="2",
                      comment="Organizational tier: 1 | 2 | 3"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    # ── Projects ──────────────────────────────────────────────────────────
    if "projects" not in existing:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_name", sa.String(length=255), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False,
                      server_default="in_progress"),
            sa.Column("health", sa.String(length=10), nullable=False,
                      server_default="green", comment="green | yellow | red"),
            sa.Column("arr_value", sa.Numeric(precision=14, scale=2), nullable=True),
            sa.Column("close_date", sa.Date(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("tier1_owner_id", sa.Integer(), nullable=True),
            sa.Column("tier2_owner_id", sa.Integer(), nullable=True),
            sa.Column("tier3_owners", sa.Text(), nullable=True,
                      comment="JSON array of user ids, e.g. [3, 7, 9]"),
            sa.Column("risk_description", sa.Text(), nullable=True),
            sa.Column("ask_description", sa.Text(), nullable=True),
            sa.Column("impact_description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["tier1_owner_id"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["tier2_owner_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_status_health", "projects", ["status", "health"])

    # ── Project notes ─────────────────────────────────────────────────────
    if "project_notes" not in existing:
        op.create_table(
            "project_notes",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("note_text", sa.Text(), nullable=False),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_notes_project_id", "project_notes", ["project_id"])

    # ── Project health history ────────────────────────────────────────────
    if "project_health_history" not in existing:
        op.create_table(
            "project_health_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("health", sa.String(length=10), nullable=False),
            sa.Column("changed_by", sa.Integer(), nullable=True),
            sa.Column("change_reason", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["changed_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_health_history_project_id",
                        "project_health_history", ["project_id"])
        op.create_index("ix_project_health_history_created_at",
                        "project_health_history", ["created_at"])

    # ── Project custom fields ─────────────────────────────────────────────
    if "project_custom_fields" not in existing:
        op.create_table(
            "project_custom_fields",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("field_name", sa.String(length=100), nullable=False),
            sa.Column("field_value", sa.Text(), nullable=True),
            sa.Column("field_type", sa.String(length=20), nullable=False,
                      server_default="text"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "field_name", name="uq_project_custom_field_name"),
        )
        op.create_index("ix_project_custom_fields_project_id",
                        "project_custom_fields", ["project_id"])

    # ── Time entries ──────────────────────────────────────────────────────
    if "time_entries" not in existing:
        op.create_table(
            "time_entries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("entry_date", sa.Date(), nullable=False),
            sa.Column("hours", sa.Numeric(precision=5, scale=2), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "entry_date", name="uq_time_entries_user_date"),
        )
        op.create_index("ix_time_entries_user_id", "time_entries", ["user_id"])
        op.create_index("ix_time_entries_entry_date", "time_entries", ["entry_date"])


def downgrade():
    op.drop_table("time_entries")
    op.drop_table("project_custom_fields")
    op.drop_table("project_health_history")
    op.drop_table("project_notes")
    op.drop_table("projects")
    op.drop_table("users")

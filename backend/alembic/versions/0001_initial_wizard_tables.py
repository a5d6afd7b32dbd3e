"""Initial schema: wizards, report data, files, activity log, business tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    # ── Business tables read by reports and feeds ────────────
    op.create_table(
        "employers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sirius_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
    )
    op.create_table(
        "contacts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("given", sa.Text()),
        sa.Column("family", sa.Text()),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text()),
    )
    op.create_table(
        "bargaining_units",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
    )
    op.create_table(
        "workers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sirius_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("contact_id", sa.String(36), sa.ForeignKey("contacts.id"), nullable=False),
        sa.Column("ssn", sa.Text()),
        sa.Column("bargaining_unit_id", sa.String(36), sa.ForeignKey("bargaining_units.id")),
        sa.Column("denorm_home_employer_id", sa.String(36), sa.ForeignKey("employers.id")),
    )
    op.create_index("ix_workers_ssn", "workers", ["ssn"])
    op.create_index("ix_workers_denorm_home_employer_id", "workers", ["denorm_home_employer_id"])

    op.create_table(
        "worker_hours",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("worker_id", sa.String(36), sa.ForeignKey("workers.id"), nullable=False),
        sa.Column("employer_id", sa.String(36), sa.ForeignKey("employers.id"), nullable=False),
        sa.Column("hours", sa.Float()),
        sa.Column("home", sa.Boolean(), nullable=False, server_default="false"),
        sa.UniqueConstraint("worker_id", "employer_id", "year", "month", "day"),
    )
    op.create_index("ix_worker_hours_worker_id", "worker_hours", ["worker_id"])
    op.create_index("ix_worker_hours_employer_id", "worker_hours", ["employer_id"])

    op.create_table(
        "trust_benefits",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("benefit_type", sa.String(50)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
    )
    op.create_table(
        "trust_wmb",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("worker_id", sa.String(36), sa.ForeignKey("workers.id"), nullable=False),
        sa.Column("employer_id", sa.String(36), sa.ForeignKey("employers.id"), nullable=False),
        sa.Column("benefit_id", sa.String(36), sa.ForeignKey("trust_benefits.id"), nullable=False),
        sa.UniqueConstraint("worker_id", "employer_id", "benefit_id", "month", "year"),
    )
    op.create_index("ix_trust_wmb_worker_id", "trust_wmb", ["worker_id"])
    op.create_index("ix_trust_wmb_benefit_id", "trust_wmb", ["benefit_id"])

    op.create_table(
        "charge_plugin_configs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("plugin_id", sa.String(100), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column(
            "employer_id", sa.String(36),
            sa.ForeignKey("employers.id", ondelete="CASCADE"),
        ),
        sa.Column("settings", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("plugin_id", "scope", "employer_id"),
    )
    op.create_index("ix_charge_plugin_configs_plugin_id", "charge_plugin_configs", ["plugin_id"])

    op.create_table(
        "cardchecks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "worker_id", sa.String(36),
            sa.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("cardcheck_definition_id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("bargaining_unit_id", sa.String(36), sa.ForeignKey("bargaining_units.id")),
        sa.Column("signed_date", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_cardchecks_worker_id", "cardchecks", ["worker_id"])
    op.create_index("ix_cardchecks_cardcheck_definition_id", "cardchecks", ["cardcheck_definition_id"])

    # ── Wizard engine ────────────────────────────────────────
    op.create_table(
        "wizards",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="draft"),
        sa.Column("current_step", sa.String(100)),
        sa.Column("entity_id", sa.String(36)),
        sa.Column("data", sa.JSON()),
    )
    op.create_index("ix_wizards_date", "wizards", ["date"])
    op.create_index("ix_wizards_type", "wizards", ["type"])
    op.create_index("ix_wizards_entity_id", "wizards", ["entity_id"])

    op.create_table(
        "wizard_report_data",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "wizard_id", sa.String(36),
            sa.ForeignKey("wizards.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("run_id", sa.String(36), nullable=False),
        sa.Column("pk", sa.String(255), nullable=False),
        sa.Column("data", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("wizard_id", "pk", name="uq_wizard_report_data_wizard_pk"),
    )
    op.create_index("ix_wizard_report_data_wizard_id", "wizard_report_data", ["wizard_id"])
    op.create_index("ix_wizard_report_data_created_at", "wizard_report_data", ["created_at"])

    op.create_table(
        "wizard_employer_monthly",
        sa.Column(
            "wizard_id", sa.String(36),
            sa.ForeignKey("wizards.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "employer_id", sa.String(36),
            sa.ForeignKey("employers.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
    )
    op.create_index("ix_wizard_employer_monthly_employer_id", "wizard_employer_monthly", ["employer_id"])

    op.create_table(
        "files",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("storage_path", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(150)),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("uploaded_by", sa.String(36), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("entity_type", sa.String(50)),
        sa.Column("entity_id", sa.String(36)),
        sa.Column("access_level", sa.String(20), nullable=False, server_default="private"),
        sa.Column("metadata", sa.JSON()),
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("user_name", sa.String(200), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36)),
        sa.Column("host_entity_id", sa.String(36)),
        sa.Column("description", sa.Text()),
        sa.Column("details", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_module", "activity_logs", ["module"])
    op.create_index("ix_activity_logs_host_entity_id", "activity_logs", ["host_entity_id"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "activity_logs",
        "files",
        "wizard_employer_monthly",
        "wizard_report_data",
        "wizards",
        "cardchecks",
        "charge_plugin_configs",
        "trust_wmb",
        "trust_benefits",
        "worker_hours",
        "workers",
        "bargaining_units",
        "contacts",
        "employers",
    ):
        op.drop_table(table)

"""Initial posture tables: the four source tables, sync audit log and daily snapshots.

Revision ID: 20261018000000
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261018000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "kb4_users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("division", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=True),
        sa.Column("manager_name", sa.String(length=255), nullable=True),
        sa.Column("manager_email", sa.String(length=320), nullable=True),
        sa.Column("employee_number", sa.String(length=255), nullable=True),
        sa.Column("organization", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("current_risk_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("phish_prone_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_sign_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_kb4_users_user_id"), "kb4_users", ["user_id"], unique=True)
    op.create_index(op.f("ix_kb4_users_email"), "kb4_users", ["email"], unique=False)
    op.create_index(op.f("ix_kb4_users_department"), "kb4_users", ["department"], unique=False)
    op.create_index(op.f("ix_kb4_users_status"), "kb4_users", ["status"], unique=False)

    op.create_table(
        "ncm_devices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("device_name", sa.String(length=255), nullable=False),
        sa.Column("device_ip", sa.String(length=64), nullable=True),
        sa.Column("hw_model", sa.String(length=255), nullable=True),
        sa.Column("fw_series", sa.String(length=255), nullable=True),
        sa.Column("fw_version", sa.String(length=255), nullable=True),
        sa.Column("update_priority", sa.String(length=32), nullable=False, server_default="P3-Monitor"),
        sa.Column("total_cve_instances", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_kev_active_exploit", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_critical_cve", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_cvss", sa.Float(), nullable=False, server_default="0"),
        sa.Column("action_required", sa.Text(), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ncm_devices_name_ip", "ncm_devices", ["device_name", "device_ip"], unique=False)
    op.create_index(
        op.f("ix_ncm_devices_update_priority"), "ncm_devices", ["update_priority"], unique=False
    )

    op.create_table(
        "edr_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False, server_default="Low"),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("hostname", sa.String(length=255), nullable=False),
        sa.Column("ioa_name", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("domain", sa.Text(), nullable=True),
        sa.Column("file_sha256", sa.String(length=128), nullable=True),
        sa.Column("file_path", sa.Text(), nullable=True),
        sa.Column("vt_verdict", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="new"),
        sa.Column("assigned_to", sa.String(length=255), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_edr_alerts_hostname_detected_at", "edr_alerts", ["hostname", "detected_at"], unique=False
    )
    op.create_index(op.f("ix_edr_alerts_severity"), "edr_alerts", ["severity"], unique=False)
    op.create_index(op.f("ix_edr_alerts_status"), "edr_alerts", ["status"], unique=False)

    op.create_table(
        "hibp_breaches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("alias", sa.String(length=320), nullable=True),
        sa.Column("breach_name", sa.String(length=255), nullable=False),
        sa.Column("breach_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discovered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="new"),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", "breach_name", name="uq_hibp_breaches_email_breach_name"),
    )
    op.create_index(op.f("ix_hibp_breaches_domain"), "hibp_breaches", ["domain"], unique=False)
    op.create_index(op.f("ix_hibp_breaches_email"), "hibp_breaches", ["email"], unique=False)
    op.create_index(op.f("ix_hibp_breaches_status"), "hibp_breaches", ["status"], unique=False)

    op.create_table(
        "sync_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("record_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sync_logs_source"), "sync_logs", ["source"], unique=False)
    op.create_index(op.f("ix_sync_logs_created_at"), "sync_logs", ["created_at"], unique=False)

    float_metrics = ("kb4_avg_risk_score", "kb4_avg_phish_prone_rate")
    int_metrics = (
        "kb4_total_users",
        "kb4_high_risk_users",
        "ncm_total_devices",
        "ncm_p0_devices",
        "ncm_p1_devices",
        "ncm_total_cves",
        "edr_total_alerts",
        "edr_high_alerts",
        "edr_pending_alerts",
        "edr_resolved_alerts",
        "hibp_total_breaches",
        "hibp_new_breaches",
        "hibp_pending_breaches",
        "overall_risk_score",
    )
    op.create_table(
        "daily_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        *[sa.Column(n, sa.Integer(), nullable=False, server_default="0") for n in int_metrics],
        *[sa.Column(n, sa.Float(), nullable=False, server_default="0") for n in float_metrics],
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_daily_snapshots_date"), "daily_snapshots", ["date"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_daily_snapshots_date"), table_name="daily_snapshots")
    op.drop_table("daily_snapshots")
    op.drop_index(op.f("ix_sync_logs_created_at"), table_name="sync_logs")
    op.drop_index(op.f("ix_sync_logs_source"), table_name="sync_logs")
    op.drop_table("sync_logs")
    op.drop_index(op.f("ix_hibp_breaches_status"), table_name="hibp_breaches")
    op.drop_index(op.f("ix_hibp_breaches_email"), table_name="hibp_breaches")
    op.drop_index(op.f("ix_hibp_breaches_domain"), table_name="hibp_breaches")
    op.drop_table("hibp_breaches")
    op.drop_index(op.f("ix_edr_alerts_status"), table_name="edr_alerts")
    op.drop_index(op.f("ix_edr_alerts_severity"), table_name="edr_alerts")
    op.drop_index("ix_edr_alerts_hostname_detected_at", table_name="edr_alerts")
    op.drop_table("edr_alerts")
    op.drop_index(op.f("ix_ncm_devices_update_priority"), table_name="ncm_devices")
    op.drop_index("ix_ncm_devices_name_ip", table_name="ncm_devices")
    op.drop_table("ncm_devices")
    op.drop_index(op.f("ix_kb4_users_status"), table_name="kb4_users")
    op.drop_index(op.f("ix_kb4_users_department"), table_name="kb4_users")
    op.drop_index(op.f("ix_kb4_users_email"), table_name="kb4_users")
    op.drop_index(op.f("ix_kb4_users_user_id"), table_name="kb4_users")
    op.drop_table("kb4_users")

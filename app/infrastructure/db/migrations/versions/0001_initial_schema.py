"""Users, audit log and pre-operative forms"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_JSON_COLUMNS = (
    "or_checklist_json",
    "valuables_data_json",
    "consent_data_json",
    "npo_data_json",
    "iv_data_json",
    "anes_lab_json",
    "medication_data_json",
    "result_or_json",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("login", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default=sa.text("'user'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.CheckConstraint("role in ('admin','user')", name="ck_users_role"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], name="fk_users_created_by_users", ondelete="SET NULL"
        ),
        sa.UniqueConstraint("login", name="uq_users_login"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_ts", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_audit_log_user_id_users", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_audit_log_event_ts", "audit_log", ["event_ts"], unique=False)
    op.create_index("ix_audit_log_entity_type_entity_id", "audit_log", ["entity_type", "entity_id"], unique=False)

    op.create_table(
        "preop_form",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("form_date", sa.String(), nullable=False),
        sa.Column("form_time", sa.String(), nullable=False),
        sa.Column("ward", sa.String(), nullable=False),
        sa.Column("time_field", sa.String(), nullable=True),
        sa.Column("preparer", sa.String(), nullable=True),
        sa.Column("hn", sa.String(), nullable=False),
        sa.Column("an", sa.String(), nullable=True),
        sa.Column("patient_name", sa.String(), nullable=False),
        sa.Column("sex", sa.String(), nullable=True),
        sa.Column("age", sa.String(), nullable=True),
        sa.Column("dob", sa.String(), nullable=True),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("weight", sa.String(), nullable=True),
        sa.Column("right_side", sa.String(), nullable=True),
        sa.Column("allergy", sa.String(), nullable=True),
        sa.Column("attending_physician", sa.String(), nullable=True),
        sa.Column("bed", sa.String(), nullable=True),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column("operation", sa.Text(), nullable=True),
        sa.Column("other_notes", sa.Text(), nullable=True),
        *[sa.Column(name, sa.Text(), nullable=False, server_default=sa.text("'{}'")) for name in _JSON_COLUMNS],
        sa.Column("qr_payload", sa.Text(), nullable=True),
        sa.Column("surgery_completed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("surgery_completed_at", sa.DateTime(), nullable=True),
        sa.Column("surgery_completed_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by", sa.String(), nullable=False),
    )
    op.create_index("ix_preop_form_hn", "preop_form", ["hn"], unique=False)
    op.create_index("ix_preop_form_form_date", "preop_form", ["form_date"], unique=False)
    op.create_index("ix_preop_form_ward", "preop_form", ["ward"], unique=False)
    op.create_index("ix_preop_form_created_at", "preop_form", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_preop_form_created_at", table_name="preop_form")
    op.drop_index("ix_preop_form_ward", table_name="preop_form")
    op.drop_index("ix_preop_form_form_date", table_name="preop_form")
    op.drop_index("ix_preop_form_hn", table_name="preop_form")
    op.drop_table("preop_form")
    op.drop_index("ix_audit_log_entity_type_entity_id", table_name="audit_log")
    op.drop_index("ix_audit_log_event_ts", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("users")

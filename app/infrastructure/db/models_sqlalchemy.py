from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import expression

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    # avoid constraint_name token to allow unnamed CheckConstraint
    "ck": "ck_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=naming_convention)


class Base(DeclarativeBase):
    metadata = metadata


def utc_now() -> datetime:
    return datetime.now(UTC)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    login = Column(String, unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, server_default=expression.literal("user"))
    is_active = Column(Boolean, nullable=False, server_default=expression.true())
    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        CheckConstraint("role in ('admin','user')", name="ck_users_role"),
    )


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True)
    event_ts = Column(DateTime, nullable=False, default=utc_now)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    action = Column(String, nullable=False)
    payload_json = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_audit_log_event_ts", "event_ts"),
        Index("ix_audit_log_entity_type_entity_id", "entity_type", "entity_id"),
    )


class PreopForm(Base):
    __tablename__ = "preop_form"

    id = Column(String(36), primary_key=True)

    form_date = Column(String, nullable=False)
    form_time = Column(String, nullable=False)
    ward = Column(String, nullable=False)
    time_field = Column(String)
    preparer = Column(String)

    hn = Column(String, nullable=False)
    an = Column(String)
    patient_name = Column(String, nullable=False)
    sex = Column(String)
    age = Column(String)
    dob = Column(String)
    department = Column(String)
    weight = Column(String)
    right_side = Column(String)
    allergy = Column(String)
    attending_physician = Column(String)
    bed = Column(String)
    diagnosis = Column(Text)
    operation = Column(Text)
    other_notes = Column(Text)

    # Checklist sections are stored as JSON text, one column per section.
    or_checklist_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    valuables_data_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    consent_data_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    npo_data_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    iv_data_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    anes_lab_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    medication_data_json = Column(Text, nullable=False, server_default=expression.literal("{}"))
    result_or_json = Column(Text, nullable=False, server_default=expression.literal("{}"))

    qr_payload = Column(Text)

    surgery_completed = Column(Boolean, nullable=False, server_default=expression.false())
    surgery_completed_at = Column(DateTime)
    surgery_completed_by = Column(String)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by = Column(String, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utc_now)
    updated_by = Column(String, nullable=False)

    __table_args__ = (
        Index("ix_preop_form_hn", "hn"),
        Index("ix_preop_form_form_date", "form_date"),
        Index("ix_preop_form_ward", "ward"),
        Index("ix_preop_form_created_at", "created_at"),
    )

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.domain.models.preop_form import RECORD_FIELDS
from app.infrastructure.db import models_sqlalchemy as models

_SECTION_JSON_FIELD_MAP = {
    "valuables": "valuables_data_json",
    "consent": "consent_data_json",
    "npo": "npo_data_json",
    "iv": "iv_data_json",
    "lab": "anes_lab_json",
    "medication": "medication_data_json",
}
_ROWS_JSON_FIELD = "or_checklist_json"
_RESULT_JSON_FIELD = "result_or_json"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _to_json(value: object) -> str:
    if value is None:
        return "{}"
    return json.dumps(value, ensure_ascii=False, default=str)


def _from_json(value: object) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    try:
        decoded = json.loads(str(value))
    except Exception:  # noqa: BLE001
        return {}
    return decoded if isinstance(decoded, dict) else {}


def _iso_date(value: object) -> str | None:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    return text or None


class PreopFormRepository:
    def list_forms(
        self,
        session: Session,
        *,
        filters: dict[str, object] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[models.PreopForm]:
        stmt = self._apply_filters(select(models.PreopForm), filters or {})
        stmt = stmt.order_by(models.PreopForm.created_at.desc(), models.PreopForm.id.asc()).offset(offset).limit(limit)
        return list(session.execute(stmt).scalars())

    def list_all(self, session: Session, *, filters: dict[str, object] | None = None) -> list[models.PreopForm]:
        stmt = self._apply_filters(select(models.PreopForm), filters or {})
        return list(session.execute(stmt.order_by(models.PreopForm.created_at.desc())).scalars())

    def count_forms(self, session: Session, *, filters: dict[str, object] | None = None) -> int:
        stmt = self._apply_filters(select(func.count(models.PreopForm.id)), filters or {})
        return int(session.execute(stmt).scalar() or 0)

    def search_by_hn(self, session: Session, hn: str, *, limit: int = 100) -> list[models.PreopForm]:
        stmt = (
            select(models.PreopForm)
            .where(models.PreopForm.hn.ilike(f"%{hn}%"))
            .order_by(models.PreopForm.created_at.desc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())

    def get_form(self, session: Session, form_id: str) -> models.PreopForm | None:
        return session.get(models.PreopForm, form_id)

    def create_form(
        self,
        session: Session,
        *,
        payload: dict[str, Any],
        actor_login: str,
        form_id: str | None = None,
    ) -> models.PreopForm:
        now = _utc_now()
        row = models.PreopForm(
            id=form_id or str(uuid4()),
            created_at=now,
            created_by=actor_login,
            updated_at=now,
            updated_by=actor_login,
            surgery_completed=False,
        )
        self._apply_payload(row, payload)
        session.add(row)
        session.flush()
        return row

    def update_form(
        self,
        session: Session,
        *,
        form_id: str,
        payload: dict[str, Any],
        actor_login: str,
    ) -> models.PreopForm:
        row = self.get_form(session, form_id)
        if row is None:
            raise ValueError("Pre-operative form not found")
        self._apply_payload(row, payload)
        row.updated_at = _utc_now()  # type: ignore[assignment]
        row.updated_by = actor_login  # type: ignore[assignment]
        session.flush()
        return row

    def set_qr_payload(self, session: Session, *, form_id: str, qr_payload: str) -> None:
        row = self.get_form(session, form_id)
        if row is None:
            raise ValueError("Pre-operative form not found")
        row.qr_payload = qr_payload  # type: ignore[assignment]
        session.flush()

    def set_surgery_completed(self, session: Session, *, form_id: str, actor_login: str) -> models.PreopForm:
        row = self.get_form(session, form_id)
        if row is None:
            raise ValueError("Pre-operative form not found")
        now = _utc_now()
        row.surgery_completed = True  # type: ignore[assignment]
        row.surgery_completed_at = now  # type: ignore[assignment]
        row.surgery_completed_by = actor_login  # type: ignore[assignment]
        row.updated_at = now  # type: ignore[assignment]
        row.updated_by = actor_login  # type: ignore[assignment]
        session.flush()
        return row

    def delete_form(self, session: Session, form_id: str) -> bool:
        row = self.get_form(session, form_id)
        if row is None:
            return False
        session.delete(row)
        return True

    def to_form_dict(self, row: models.PreopForm) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": str(row.id),
            "created_at": row.created_at,
            "created_by": row.created_by,
            "updated_at": row.updated_at,
            "updated_by": row.updated_by,
            "surgery_completed": bool(row.surgery_completed),
            "surgery_completed_at": row.surgery_completed_at,
            "surgery_completed_by": row.surgery_completed_by,
            "qr_payload": _from_json(row.qr_payload) if row.qr_payload else None,
        }
        for name in RECORD_FIELDS:
            payload[name] = getattr(row, name)
        payload["rows"] = _from_json(getattr(row, _ROWS_JSON_FIELD))
        payload["inner"] = {
            section: _from_json(getattr(row, column)) for section, column in _SECTION_JSON_FIELD_MAP.items()
        }
        payload["result"] = _from_json(getattr(row, _RESULT_JSON_FIELD))
        return payload

    def to_status_source(self, row: models.PreopForm) -> dict[str, Any]:
        """Stored sub-documents exactly as persisted, for readiness classification."""
        return {
            "or_checklist": row.or_checklist_json,
            "anes_lab": row.anes_lab_json,
            "consent_data": row.consent_data_json,
            "npo_data": row.npo_data_json,
            "result_or": row.result_or_json,
            "attending_physician": row.attending_physician,
        }

    def _apply_payload(self, row: models.PreopForm, payload: dict[str, Any]) -> None:
        for name in RECORD_FIELDS:
            if name in payload:
                setattr(row, name, payload[name] or None)
        if "rows" in payload:
            setattr(row, _ROWS_JSON_FIELD, _to_json(payload["rows"]))
        inner = payload.get("inner")
        if isinstance(inner, dict):
            for section, values in inner.items():
                column = _SECTION_JSON_FIELD_MAP.get(section)
                if column:
                    setattr(row, column, _to_json(values))
        if "result" in payload:
            setattr(row, _RESULT_JSON_FIELD, _to_json(payload["result"]))

    def _apply_filters(self, stmt: Select, filters: dict[str, object]) -> Select:
        date_from = _iso_date(filters.get("date_from"))
        if date_from:
            stmt = stmt.where(models.PreopForm.form_date >= date_from)
        date_to = _iso_date(filters.get("date_to"))
        if date_to:
            stmt = stmt.where(models.PreopForm.form_date <= date_to)

        ward = str(filters.get("ward") or "").strip()
        if ward:
            stmt = stmt.where(models.PreopForm.ward.ilike(f"%{ward}%"))

        query_text = str(filters.get("query") or "").strip()
        if query_text:
            like = f"%{query_text}%"
            stmt = stmt.where(
                models.PreopForm.hn.ilike(like)
                | models.PreopForm.an.ilike(like)
                | models.PreopForm.patient_name.ilike(like)
            )
        return stmt

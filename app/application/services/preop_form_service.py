from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import astuple
from datetime import UTC, datetime
from typing import Any, cast

from app.application.dto.preop_form_dto import (
    PreopFormCreateRequest,
    PreopFormDto,
    PreopFormEditView,
    PreopFormFilters,
    PreopFormListItemDto,
    PreopFormPageDto,
    PreopFormPayload,
    PreopFormUpdateRequest,
)
from app.application.security import can_delete_forms, can_reopen_forms, is_privileged
from app.config import settings
from app.domain.models.locks import ActingUser, Baseline, LockTarget
from app.domain.models.preop_form import RECORD_FIELDS, ChecklistRow
from app.domain.rules.checklist_rules import (
    allergy_value,
    build_changed_paths,
    changed_lock_targets,
    detect_allergy_status,
    validate_finalization_transition,
    validate_form_payload,
)
from app.domain.rules.lock_rules import build_lock_map, is_locked, normalize_person_name
from app.domain.rules.status_rules import MESSAGE_MALFORMED, StatusResult, classify
from app.infrastructure.db import models_sqlalchemy as models
from app.infrastructure.db.repositories.audit_repo import AuditLogRepository
from app.infrastructure.db.repositories.preop_form_repo import PreopFormRepository
from app.infrastructure.db.repositories.user_repo import UserRepository
from app.infrastructure.db.session import session_scope

logger = logging.getLogger(__name__)

_AUDIT_SCHEMA = "preop.audit.v1"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class PreopFormService:
    def __init__(
        self,
        repo: PreopFormRepository | None = None,
        user_repo: UserRepository | None = None,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
        enforce_field_locks: bool | None = None,
    ) -> None:
        self.repo = repo or PreopFormRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory
        self.enforce_field_locks = (
            settings.enforce_field_locks if enforce_field_locks is None else enforce_field_locks
        )

    def list_forms(
        self,
        filters: PreopFormFilters | None = None,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> PreopFormPageDto:
        page = max(1, page)
        limit = min(max(1, limit), settings.page_limit_max)
        filter_payload = filters.model_dump(exclude_none=True) if filters else {}
        with self.session_factory() as session:
            total = self.repo.count_forms(session, filters=filter_payload)
            rows = self.repo.list_forms(session, filters=filter_payload, limit=limit, offset=(page - 1) * limit)
            items = [self._to_list_item(row) for row in rows]
        return PreopFormPageDto(page=page, limit=limit, total_count=total, items=items)

    def search_by_hn(self, hn: str) -> list[PreopFormListItemDto]:
        hn = (hn or "").strip()
        if not hn:
            raise ValueError("Provide an HN to search for")
        with self.session_factory() as session:
            return [self._to_list_item(row) for row in self.repo.search_by_hn(session, hn)]

    def get_form(self, form_id: str) -> PreopFormDto:
        with self.session_factory() as session:
            row = self._get_row(session, form_id)
            return self._to_dto(row)

    def open_for_edit(self, form_id: str, actor_id: int) -> PreopFormEditView:
        """Load a form together with the lock flags of every field for ``actor_id``.

        The returned baseline is the reference for lock decisions for the rest
        of the editing session; it is never refreshed by later saves.
        """
        with self.session_factory() as session:
            actor = self._require_actor(session, actor_id)
            row = self._get_row(session, form_id)
            form = self._to_dto(row)
            baseline = Baseline(self.repo.to_form_dict(row))

        privileged = is_privileged(str(actor.role))
        finalized = baseline.is_finalized()
        locks = build_lock_map(
            baseline,
            _acting_user(actor),
            is_privileged=privileged,
            record_is_finalized=finalized,
        )
        return PreopFormEditView(
            form=form,
            baseline=baseline,
            locks=locks,
            readonly=finalized and not privileged,
            privileged=privileged,
        )

    def create_form(self, request: PreopFormCreateRequest, actor_id: int) -> PreopFormDto:
        payload = _editable_payload(request)
        validate_form_payload(payload)
        with self.session_factory() as session:
            actor = self._require_actor(session, actor_id)
            _stamp_preparer_ids({}, payload["rows"], actor)
            row = self.repo.create_form(session, payload=payload, actor_login=str(actor.login))
            qr_payload = {
                "form_id": str(row.id),
                "hn": row.hn,
                "an": row.an,
                "created_at": cast(datetime, row.created_at).isoformat(),
            }
            self.repo.set_qr_payload(session, form_id=str(row.id), qr_payload=json.dumps(qr_payload))
            self._write_audit(
                session,
                actor_id=actor_id,
                form_id=str(row.id),
                action="create",
                changes={"before": {}, "after": payload},
            )
            logger.info("Form %s created by %s", row.id, actor.login)
            return self._to_dto(row)

    def update_form(self, form_id: str, request: PreopFormUpdateRequest, actor_id: int) -> PreopFormDto:
        """Replace the editable part of a form; the last write wins."""
        after_payload = _editable_payload(request)
        validate_form_payload(after_payload)
        with self.session_factory() as session:
            actor = self._require_actor(session, actor_id)
            row = self._get_row(session, form_id)
            before = self.repo.to_form_dict(row)
            before_payload = _comparable(before, after_payload)
            baseline = Baseline(before)
            role = str(actor.role)

            was_finalized = baseline.is_finalized()
            validate_finalization_transition(
                was_finalized=was_finalized,
                is_finalized=Baseline(after_payload).is_finalized(),
                can_reopen=can_reopen_forms(role),
            )
            _stamp_preparer_ids(before_payload.get("rows"), after_payload["rows"], actor)
            if self.enforce_field_locks:
                self._check_locks(
                    baseline,
                    _acting_user(actor),
                    privileged=is_privileged(role),
                    finalized=was_finalized,
                    before=before_payload,
                    after=after_payload,
                )

            row = self.repo.update_form(session, form_id=form_id, payload=after_payload, actor_login=str(actor.login))
            self._write_audit(
                session,
                actor_id=actor_id,
                form_id=form_id,
                action="update",
                changes=build_changed_paths(before_payload, after_payload),
            )
            return self._to_dto(row)

    def mark_surgery_completed(self, form_id: str, actor_id: int) -> PreopFormDto:
        with self.session_factory() as session:
            actor = self._require_actor(session, actor_id)
            row = self._get_row(session, form_id)
            if bool(row.surgery_completed):
                raise ValueError("Surgery is already marked as completed for this form")
            row = self.repo.set_surgery_completed(session, form_id=form_id, actor_login=str(actor.login))
            self._write_audit(
                session,
                actor_id=actor_id,
                form_id=form_id,
                action="surgery_completed",
                changes={"before": {"surgery_completed": False}, "after": {"surgery_completed": True}},
            )
            return self._to_dto(row)

    def delete_form(self, form_id: str, actor_id: int) -> None:
        with self.session_factory() as session:
            actor = self._require_actor(session, actor_id)
            if not can_delete_forms(str(actor.role)):
                raise ValueError("Only an administrator can delete forms")
            if not self.repo.delete_form(session, form_id):
                raise ValueError("Pre-operative form not found")
            self.audit_repo.add_event(
                session,
                user_id=actor_id,
                entity_type="preop_form",
                entity_id=form_id,
                action="preop_delete",
                payload_json=json.dumps({"schema": _AUDIT_SCHEMA}),
            )
            logger.info("Form %s deleted by %s", form_id, actor.login)

    def classify_row(self, row: models.PreopForm) -> StatusResult:
        status = classify(self.repo.to_status_source(row))
        if status.message == MESSAGE_MALFORMED:
            logger.warning("Form %s has malformed checklist JSON; reporting it as not ready", row.id)
        return status

    def _check_locks(
        self,
        baseline: Baseline,
        actor: ActingUser,
        *,
        privileged: bool,
        finalized: bool,
        before: dict[str, Any],
        after: dict[str, Any],
    ) -> None:
        locked = [
            target
            for target in changed_lock_targets(before, after)
            if is_locked(baseline, actor, is_privileged=privileged, record_is_finalized=finalized, target=target)
        ]
        if locked:
            logger.info("Rejected update by %s: %d locked field(s)", actor.full_name, len(locked))
            raise ValueError(f"Fields are locked for this user: {', '.join(_describe(t) for t in locked)}")

    def _to_list_item(self, row: models.PreopForm) -> PreopFormListItemDto:
        status = self.classify_row(row)
        return PreopFormListItemDto(
            id=str(row.id),
            hn=str(row.hn),
            an=cast(str | None, row.an),
            patient_name=str(row.patient_name),
            ward=str(row.ward),
            form_date=str(row.form_date),
            form_time=str(row.form_time),
            created_at=cast(datetime, row.created_at),
            surgery_completed=bool(row.surgery_completed),
            status=status.status.value,
            status_message=status.message,
        )

    def _to_dto(self, row: models.PreopForm) -> PreopFormDto:
        status = self.classify_row(row)
        payload = self.repo.to_form_dict(row)
        payload["allergy_status"] = detect_allergy_status(payload.get("allergy"))[0].value
        payload["status"] = status.status.value
        payload["status_message"] = status.message
        return PreopFormDto.model_validate(payload)

    def _get_row(self, session, form_id: str) -> models.PreopForm:
        row = self.repo.get_form(session, form_id)
        if row is None:
            raise ValueError("Pre-operative form not found")
        return row

    def _require_actor(self, session, actor_id: int) -> models.User:
        actor = self.user_repo.get_by_id(session, actor_id)
        if actor is None or not actor.is_active:
            raise ValueError("Unknown or deactivated user")
        return actor

    def _write_audit(
        self,
        session,
        *,
        actor_id: int,
        form_id: str,
        action: str,
        changes: dict[str, Any],
    ) -> None:
        payload_json = json.dumps(
            {
                "schema": _AUDIT_SCHEMA,
                "event": {"ts": _utc_now().isoformat(), "action": action},
                "changes": {
                    "format": "before_after",
                    "before": changes.get("before", {}),
                    "after": changes.get("after", {}),
                },
            },
            ensure_ascii=False,
            default=str,
        )
        self.audit_repo.add_event(
            session,
            user_id=actor_id,
            entity_type="preop_form",
            entity_id=form_id,
            action=f"preop_{action}",
            payload_json=payload_json,
        )


def _editable_payload(request: PreopFormPayload) -> dict[str, Any]:
    payload = request.model_dump(mode="json", exclude={"allergy_status"})
    if request.allergy_status is not None:
        payload["allergy"] = allergy_value(request.allergy_status, request.allergy)
    return payload


def _acting_user(user: models.User) -> ActingUser:
    return ActingUser(user_id=str(user.id), full_name=str(user.full_name or ""))


def _describe(target: LockTarget) -> str:
    return ".".join(str(value) for value in astuple(target))


def _comparable(stored: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    """Stored form reduced to the keys of ``payload``, with empty columns read back as ""."""
    before = {key: stored[key] for key in payload if key in stored}
    for name in RECORD_FIELDS:
        if name in before and before[name] is None:
            before[name] = ""
    return before


def _stamp_preparer_ids(before_rows: Any, after_rows: dict[str, Any], actor: models.User) -> None:
    """Derive every row's preparer id from the stored row and the acting user.

    Ids sent by the client are ignored. An unchanged claim keeps its stored id
    and a released row loses it. A new or renamed claim takes the actor's id.
    A privileged actor writing someone else's name leaves the id empty so the
    row is owned by that name.
    """
    before_rows = before_rows if isinstance(before_rows, dict) else {}
    actor_name = normalize_person_name(actor.full_name)
    reassigns_by_name = is_privileged(str(actor.role))
    for row_key, values in after_rows.items():
        row = ChecklistRow.from_mapping(values)
        if not row.is_claimed:
            values["preparer_id"] = None
            continue
        name = normalize_person_name(row.preparer)
        previous = ChecklistRow.from_mapping(before_rows.get(row_key))
        if previous.is_claimed and normalize_person_name(previous.preparer) == name:
            values["preparer_id"] = previous.preparer_id
        elif reassigns_by_name and name != actor_name:
            values["preparer_id"] = None
        else:
            values["preparer_id"] = str(actor.id)

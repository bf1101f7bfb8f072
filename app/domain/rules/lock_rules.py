from __future__ import annotations

from typing import Any

from app.domain.models.locks import (
    ActingUser,
    Baseline,
    ChecklistRowField,
    InnerField,
    LockTarget,
    RecordField,
    ResultField,
)
from app.domain.models.preop_form import (
    CHECKLIST_ROW_FIELDS,
    CHECKLIST_ROW_KEYS,
    INNER_SECTIONS,
    RECORD_FIELDS,
    RESULT_FIELDS,
)


def is_locked(
    baseline: Baseline,
    actor: ActingUser,
    *,
    is_privileged: bool,
    record_is_finalized: bool,
    target: LockTarget,
) -> bool:
    """Return True when ``actor`` may not edit ``target``.

    Privileged actors are never locked out. Everyone else is locked out of a
    finalized record entirely; on an open record a field is locked once the
    baseline already holds a value for it, except checklist rows, which stay
    editable for whoever claimed them.
    """
    if is_privileged:
        return False
    if record_is_finalized:
        return True
    if isinstance(target, RecordField):
        return _has_value(baseline.record_value(target.name))
    if isinstance(target, ChecklistRowField):
        return _row_locked(baseline, actor, target.row_key)
    if isinstance(target, InnerField):
        return _has_value(baseline.inner_value(target.section, target.key))
    if isinstance(target, ResultField):
        return bool(baseline.result_value(target.key))
    return True


def build_lock_map(
    baseline: Baseline,
    actor: ActingUser,
    *,
    is_privileged: bool,
    record_is_finalized: bool,
) -> dict[str, Any]:
    def check(target: LockTarget) -> bool:
        return is_locked(
            baseline,
            actor,
            is_privileged=is_privileged,
            record_is_finalized=record_is_finalized,
            target=target,
        )

    return {
        "record": {name: check(RecordField(name)) for name in RECORD_FIELDS},
        "rows": {
            row_key: {field: check(ChecklistRowField(row_key, field)) for field in CHECKLIST_ROW_FIELDS}
            for row_key in CHECKLIST_ROW_KEYS
        },
        "inner": {
            section: {key: check(InnerField(section, key)) for key in keys}
            for section, keys in INNER_SECTIONS.items()
        },
        "result": {key: check(ResultField(key)) for key in RESULT_FIELDS},
    }


def normalize_person_name(value: object) -> str:
    return " ".join(str(value or "").split()).casefold()


def _row_locked(baseline: Baseline, actor: ActingUser, row_key: str) -> bool:
    row = baseline.row(row_key)
    if not row.is_claimed:
        return False
    if row.preparer_id and actor.user_id:
        return row.preparer_id != str(actor.user_id)
    # Rows saved before preparer ids were recorded only carry the name.
    actor_name = normalize_person_name(actor.full_name)
    if actor_name and actor_name == normalize_person_name(row.preparer):
        return False
    return True


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)

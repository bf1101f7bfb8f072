from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from app.domain.constants import AllergyStatus
from app.domain.models.locks import ChecklistRowField, InnerField, LockTarget, RecordField, ResultField
from app.domain.models.preop_form import (
    ALLERGY_NKDA,
    CHECKLIST_ROW_KEYS,
    INNER_SECTIONS,
    RECORD_FIELDS,
    REQUIRED_RECORD_FIELDS,
    RESULT_FIELDS,
)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

_FIELD_LABELS = {
    "form_date": "form date",
    "form_time": "form time",
    "ward": "ward",
    "hn": "HN",
    "patient_name": "patient name",
}


def validate_required_fields(payload: Mapping[str, Any]) -> None:
    for name in REQUIRED_RECORD_FIELDS:
        if not str(payload.get(name) or "").strip():
            raise ValueError(f"Missing required field: {_FIELD_LABELS.get(name, name)}")


def validate_form_payload(payload: Mapping[str, Any]) -> None:
    validate_required_fields(payload)

    rows = _as_dict(payload.get("rows"))
    for row_key, row in rows.items():
        if row_key not in CHECKLIST_ROW_KEYS:
            raise ValueError(f"Unknown checklist row: {row_key}")
        row = _as_dict(row)
        if row.get("yes") is True and row.get("no") is True:
            raise ValueError(f"Checklist row {row_key}: yes and no cannot both be set")
        time_value = str(row.get("time") or "").strip()
        if time_value and not _TIME_RE.match(time_value):
            raise ValueError(f"Checklist row {row_key}: time must be HH:MM")

    inner = _as_dict(payload.get("inner"))
    for section in inner:
        if section not in INNER_SECTIONS:
            raise ValueError(f"Unknown checklist section: {section}")

    result = _as_dict(payload.get("result"))
    if result.get("complete") is True and result.get("not_complete") is True:
        raise ValueError("Result cannot be both complete and not complete")
    check_time = str(result.get("check_time") or "").strip()
    if check_time and not _TIME_RE.match(check_time):
        raise ValueError("Result check time must be HH:MM")


def validate_finalization_transition(*, was_finalized: bool, is_finalized: bool, can_reopen: bool) -> None:
    if was_finalized and not is_finalized and not can_reopen:
        raise ValueError("A completed form cannot be reopened")


def build_changed_paths(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    before_changes: dict[str, Any] = {}
    after_changes: dict[str, Any] = {}
    _walk_diff(before, after, "", before_changes, after_changes)
    return {"before": before_changes, "after": after_changes}


def changed_lock_targets(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[LockTarget]:
    """Map every editable path that differs between two payloads to its lock target."""
    changes = build_changed_paths(before, after)["after"]
    targets: list[LockTarget] = []
    for path in changes:
        target = _target_for_path(path)
        if target is not None and target not in targets:
            targets.append(target)
    return targets


def allergy_value(status: str, detail: str | None = None) -> str:
    if status not in AllergyStatus.values():
        raise ValueError(f"Unknown allergy status: {status}")
    if status == AllergyStatus.NO:
        return ALLERGY_NKDA
    if status == AllergyStatus.YES:
        return (detail or "").strip()
    return ""


def detect_allergy_status(value: str | None) -> tuple[AllergyStatus, str]:
    text = (value or "").strip()
    if not text:
        return AllergyStatus.UNKNOWN, ""
    if text.upper() == ALLERGY_NKDA:
        return AllergyStatus.NO, ""
    return AllergyStatus.YES, text


def _target_for_path(path: str) -> LockTarget | None:
    parts = path.split(".")
    head = parts[0]
    if head in RECORD_FIELDS and len(parts) == 1:
        return RecordField(head)
    if head == "rows" and len(parts) >= 2 and parts[1] in CHECKLIST_ROW_KEYS:
        return ChecklistRowField(parts[1], parts[2] if len(parts) > 2 else "yes")
    if head == "inner" and len(parts) >= 3 and parts[1] in INNER_SECTIONS:
        return InnerField(parts[1], parts[2])
    if head == "result" and len(parts) == 2 and parts[1] in RESULT_FIELDS:
        return ResultField(parts[1])
    return None


def _walk_diff(
    before: Any,
    after: Any,
    path: str,
    before_changes: dict[str, Any],
    after_changes: dict[str, Any],
) -> None:
    if isinstance(before, Mapping) and isinstance(after, Mapping):
        for key in sorted(set(before.keys()) | set(after.keys())):
            child_path = f"{path}.{key}" if path else str(key)
            _walk_diff(before.get(key), after.get(key), child_path, before_changes, after_changes)
        return
    if before != after:
        before_changes[path] = before
        after_changes[path] = after


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}

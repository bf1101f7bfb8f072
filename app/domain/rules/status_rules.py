from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.domain.constants import ReadinessStatus
from app.domain.models.preop_form import (
    CONSENT_ROW_KEY,
    LAB_FLAG_KEYS,
    LAB_ROW_KEY,
    NPO_FLAG_KEYS,
    NPO_ROW_KEY,
)

MESSAGE_NOT_STARTED = "not started"
MESSAGE_READY = "ready"
MESSAGE_REVIEWED_NOT_READY = "reviewed, not ready"
MESSAGE_IN_PROGRESS = "in progress"
MESSAGE_MALFORMED = "status unavailable: malformed checklist data"

PENDING_CONSENT = "Consent"
PENDING_NPO = "NPO"
PENDING_LAB = "Lab"
PENDING_PHYSICIAN = "Attending physician"

MAX_PENDING_LABELS = 3

_SUBDOCUMENT_KEYS = ("or_checklist", "anes_lab", "consent_data", "npo_data", "result_or")


class MalformedSubdocumentError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class StatusResult:
    status: ReadinessStatus
    message: str


def classify(raw: Mapping[str, Any]) -> StatusResult:
    """Derive the readiness indicator of one form from its stored sub-documents.

    ``raw`` holds ``or_checklist``, ``anes_lab``, ``consent_data``,
    ``npo_data`` and ``result_or`` (JSON text, decoded mappings or None) and the
    plain ``attending_physician`` value. Never raises: undecodable JSON yields
    a red status with a distinct message.
    """
    try:
        docs = {key: _decode(raw.get(key)) for key in _SUBDOCUMENT_KEYS}
        return _classify_decoded(docs, raw.get("attending_physician"))
    except Exception:  # noqa: BLE001
        return StatusResult(ReadinessStatus.RED, MESSAGE_MALFORMED)


def pending_items(docs: Mapping[str, Mapping[str, Any]], attending_physician: Any) -> list[str]:
    rows = docs["or_checklist"]
    lab = docs["anes_lab"]
    npo = docs["npo_data"]

    pending: list[str] = []
    if not _row_affirmed(rows, CONSENT_ROW_KEY):
        pending.append(PENDING_CONSENT)
    if not (any(_is_checked(npo.get(key)) for key in NPO_FLAG_KEYS) or _row_affirmed(rows, NPO_ROW_KEY)):
        pending.append(PENDING_NPO)
    if not (any(_is_checked(lab.get(key)) for key in LAB_FLAG_KEYS) or _row_affirmed(rows, LAB_ROW_KEY)):
        pending.append(PENDING_LAB)
    if not str(attending_physician or "").strip():
        pending.append(PENDING_PHYSICIAN)
    return pending


def has_activity(rows: Mapping[str, Any]) -> bool:
    for row in rows.values():
        if not isinstance(row, Mapping):
            continue
        if _is_checked(row.get("yes")) or _is_checked(row.get("no")):
            return True
        if str(row.get("time") or "").strip():
            return True
    return False


def _classify_decoded(docs: dict[str, Mapping[str, Any]], attending_physician: Any) -> StatusResult:
    if not has_activity(docs["or_checklist"]):
        return StatusResult(ReadinessStatus.RED, MESSAGE_NOT_STARTED)

    pending = pending_items(docs, attending_physician)[:MAX_PENDING_LABELS]
    result = docs["result_or"]
    if _is_checked(result.get("complete")):
        return StatusResult(ReadinessStatus.GREEN, MESSAGE_READY)
    if _is_checked(result.get("not_complete")):
        return StatusResult(ReadinessStatus.YELLOW, MESSAGE_REVIEWED_NOT_READY)
    if pending:
        return StatusResult(ReadinessStatus.YELLOW, ", ".join(pending))
    return StatusResult(ReadinessStatus.YELLOW, MESSAGE_IN_PROGRESS)


def _decode(value: Any) -> Mapping[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (str, bytes, bytearray)):
        if not value.strip():
            return {}
        try:
            decoded = json.loads(value)
        except ValueError as exc:
            raise MalformedSubdocumentError(str(exc)) from exc
        return decoded if isinstance(decoded, Mapping) else {}
    return {}


def _row_affirmed(rows: Mapping[str, Any], row_key: str) -> bool:
    row = rows.get(row_key)
    return isinstance(row, Mapping) and _is_checked(row.get("yes"))


def _is_checked(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return value is True or (isinstance(value, int) and value == 1)

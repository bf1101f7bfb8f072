from __future__ import annotations

import json

import pytest

from app.domain.constants import ReadinessStatus
from app.domain.rules.status_rules import (
    MESSAGE_IN_PROGRESS,
    MESSAGE_MALFORMED,
    MESSAGE_NOT_STARTED,
    MESSAGE_READY,
    MESSAGE_REVIEWED_NOT_READY,
    classify,
    has_activity,
)


def _source(
    *,
    rows: dict | None = None,
    lab: dict | None = None,
    consent: dict | None = None,
    npo: dict | None = None,
    result: dict | None = None,
    physician: str | None = None,
) -> dict:
    return {
        "or_checklist": json.dumps(rows or {}),
        "anes_lab": json.dumps(lab or {}),
        "consent_data": json.dumps(consent or {}),
        "npo_data": json.dumps(npo or {}),
        "result_or": json.dumps(result or {}),
        "attending_physician": physician,
    }


def test_empty_checklist_is_not_started() -> None:
    rows = {"row1": {"yes": False, "no": False, "time": ""}, "row2": {}}
    status = classify(_source(rows=rows, result={"complete": False}))
    assert status.status == ReadinessStatus.RED
    assert status.message == MESSAGE_NOT_STARTED


def test_activity_with_missing_consent_and_physician_lists_both() -> None:
    status = classify(
        _source(
            rows={"row1": {"yes": True}},
            npo={"npo_solid": True},
            lab={"lab_cbc": True},
            result={"complete": False},
        )
    )
    assert status.status == ReadinessStatus.YELLOW
    assert status.message == "Consent, Attending physician"


def test_finalization_overrides_pending_items() -> None:
    status = classify(
        _source(
            rows={"row1": {"yes": True}},
            npo={"npo_solid": True},
            lab={"lab_cbc": True},
            result={"complete": True},
        )
    )
    assert status.status == ReadinessStatus.GREEN
    assert status.message == MESSAGE_READY


def test_invalid_json_yields_red_without_raising() -> None:
    source = _source(rows={"row1": {"yes": True}})
    source["anes_lab"] = "{not json"
    status = classify(source)
    assert status.status == ReadinessStatus.RED
    assert status.message == MESSAGE_MALFORMED


@pytest.mark.parametrize("key", ["or_checklist", "anes_lab", "consent_data", "npo_data", "result_or"])
def test_any_malformed_subdocument_is_red(key: str) -> None:
    source = _source(rows={"row1": {"yes": True}}, result={"complete": True})
    source[key] = "[1, 2"
    assert classify(source).status == ReadinessStatus.RED


def test_no_activity_stays_red_even_when_marked_complete() -> None:
    status = classify(_source(rows={"row1": {"preparer": "Nurse A"}}, result={"complete": True}, physician="Dr. X"))
    assert status.status == ReadinessStatus.RED
    assert status.message == MESSAGE_NOT_STARTED


def test_not_complete_vote_reads_reviewed_not_ready() -> None:
    status = classify(_source(rows={"row1": {"no": True}}, result={"not_complete": True}))
    assert status.status == ReadinessStatus.YELLOW
    assert status.message == MESSAGE_REVIEWED_NOT_READY


def test_pending_labels_are_capped_at_three() -> None:
    status = classify(_source(rows={"row1": {"time": "08:30"}}))
    assert status.status == ReadinessStatus.YELLOW
    assert status.message == "Consent, NPO, Lab"


def test_rows_satisfy_npo_and_lab_predicates() -> None:
    rows = {
        "row8": {"yes": True},
        "row9": {"yes": True},
        "row11": {"yes": True},
    }
    status = classify(_source(rows=rows, physician="Dr. X"))
    assert status.status == ReadinessStatus.YELLOW
    assert status.message == MESSAGE_IN_PROGRESS


def test_stringly_flags_and_decoded_documents_are_accepted() -> None:
    source = {
        "or_checklist": {"row8": {"yes": "true"}},
        "anes_lab": {"lab_film": 1},
        "consent_data": None,
        "npo_data": {"npo_liquid": "on"},
        "result_or": "",
        "attending_physician": "Dr. X",
    }
    assert classify(source).message == MESSAGE_IN_PROGRESS


def test_non_object_json_is_treated_as_empty() -> None:
    source = _source()
    source["or_checklist"] = "[]"
    assert classify(source).message == MESSAGE_NOT_STARTED


def test_classification_is_repeatable() -> None:
    source = _source(rows={"row1": {"yes": True}}, npo={"npo_solid": True})
    assert classify(source) == classify(source)


def test_has_activity_ignores_blank_time_and_foreign_values() -> None:
    assert has_activity({"row1": {"time": "   "}, "row2": "garbage"}) is False
    assert has_activity({"row1": {"time": "07:15"}}) is True

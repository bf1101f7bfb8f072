from __future__ import annotations

import pytest

from app.domain.constants import AllergyStatus
from app.domain.models.locks import ChecklistRowField, InnerField, RecordField, ResultField
from app.domain.rules.checklist_rules import (
    allergy_value,
    build_changed_paths,
    changed_lock_targets,
    detect_allergy_status,
    validate_finalization_transition,
    validate_form_payload,
)


def _payload(**overrides) -> dict:
    payload = {
        "form_date": "2026-03-02",
        "form_time": "07:30",
        "ward": "Surgical 1",
        "hn": "HN001",
        "patient_name": "Somchai Jaidee",
        "rows": {"row1": {"yes": True, "no": False, "time": "07:45"}},
        "inner": {"npo": {"npo_solid": True}},
        "result": {"complete": False, "not_complete": False, "check_time": ""},
    }
    payload.update(overrides)
    return payload


def test_validate_form_payload_accepts_well_formed_payload() -> None:
    validate_form_payload(_payload())


@pytest.mark.parametrize(
    ("field", "label"),
    [("hn", "HN"), ("patient_name", "patient name"), ("ward", "ward"), ("form_date", "form date")],
)
def test_validate_form_payload_requires_identifying_fields(field: str, label: str) -> None:
    with pytest.raises(ValueError, match=f"Missing required field: {label}"):
        validate_form_payload(_payload(**{field: "  "}))


def test_validate_form_payload_rejects_yes_and_no_together() -> None:
    with pytest.raises(ValueError, match="yes and no"):
        validate_form_payload(_payload(rows={"row2": {"yes": True, "no": True}}))


def test_validate_form_payload_rejects_bad_times() -> None:
    with pytest.raises(ValueError, match="HH:MM"):
        validate_form_payload(_payload(rows={"row2": {"time": "25:00"}}))
    with pytest.raises(ValueError, match="check time"):
        validate_form_payload(_payload(result={"check_time": "7.30"}))


def test_validate_form_payload_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="Unknown checklist row"):
        validate_form_payload(_payload(rows={"row99": {}}))
    with pytest.raises(ValueError, match="Unknown checklist section"):
        validate_form_payload(_payload(inner={"blood_bank": {}}))


def test_validate_form_payload_rejects_conflicting_result_votes() -> None:
    with pytest.raises(ValueError, match="both complete and not complete"):
        validate_form_payload(_payload(result={"complete": True, "not_complete": True}))


def test_validate_finalization_transition_blocks_reopen_without_permission() -> None:
    with pytest.raises(ValueError, match="cannot be reopened"):
        validate_finalization_transition(was_finalized=True, is_finalized=False, can_reopen=False)
    validate_finalization_transition(was_finalized=True, is_finalized=False, can_reopen=True)
    validate_finalization_transition(was_finalized=False, is_finalized=True, can_reopen=False)


def test_build_changed_paths_returns_only_changes() -> None:
    before = {"ward": "A", "rows": {"row1": {"yes": False, "time": ""}}}
    after = {"ward": "A", "rows": {"row1": {"yes": True, "time": ""}}}
    changes = build_changed_paths(before, after)
    assert changes == {"before": {"rows.row1.yes": False}, "after": {"rows.row1.yes": True}}


def test_changed_lock_targets_maps_paths_to_targets() -> None:
    before = _payload()
    after = _payload(
        hn="HN002",
        rows={"row1": {"yes": True, "no": False, "time": "08:00"}},
        inner={"npo": {"npo_solid": True, "npo_liquid": True}},
        result={"complete": True, "not_complete": False, "check_time": ""},
    )
    targets = changed_lock_targets(before, after)
    assert RecordField("hn") in targets
    assert ChecklistRowField("row1", "time") in targets
    assert InnerField("npo", "npo_liquid") in targets
    assert ResultField("complete") in targets
    assert len(targets) == 4


def test_allergy_helpers_round_out_the_nkda_convention() -> None:
    assert allergy_value("no") == "NKDA"
    assert allergy_value("yes", "  Penicillin ") == "Penicillin"
    assert allergy_value("unknown", "ignored") == ""
    with pytest.raises(ValueError, match="Unknown allergy status"):
        allergy_value("maybe")

    assert detect_allergy_status("nkda") == (AllergyStatus.NO, "")
    assert detect_allergy_status("Penicillin") == (AllergyStatus.YES, "Penicillin")
    assert detect_allergy_status(None) == (AllergyStatus.UNKNOWN, "")

from __future__ import annotations

import pytest

from app.domain.models.locks import (
    ActingUser,
    Baseline,
    ChecklistRowField,
    InnerField,
    RecordField,
    ResultField,
)
from app.domain.rules.lock_rules import build_lock_map, is_locked, normalize_person_name

NURSE_A = ActingUser(user_id="u1", full_name="Nurse A")
NURSE_B = ActingUser(user_id="u2", full_name="Nurse B")

ALL_TARGETS = [
    RecordField("hn"),
    RecordField("ward"),
    ChecklistRowField("row1", "yes"),
    ChecklistRowField("row8", "time"),
    InnerField("lab", "lab_cbc"),
    InnerField("consent", "consent_child_guardian"),
    ResultField("complete"),
    ResultField("checker"),
]


def _locked(baseline: Baseline, actor: ActingUser, target, *, privileged=False, finalized=False) -> bool:
    return is_locked(baseline, actor, is_privileged=privileged, record_is_finalized=finalized, target=target)


def _flatten(lock_map: dict) -> list[bool]:
    values: list[bool] = []
    for value in lock_map.values():
        if isinstance(value, dict):
            values.extend(_flatten(value))
        else:
            values.append(value)
    return values


def test_unclaimed_row_is_open_to_everyone() -> None:
    baseline = Baseline({"rows": {"row1": {"preparer": "", "yes": False, "no": False, "time": ""}}})
    for actor in (NURSE_A, NURSE_B, ActingUser(user_id=None)):
        assert _locked(baseline, actor, ChecklistRowField("row1", "yes")) is False


def test_claimed_row_is_open_only_to_its_preparer() -> None:
    baseline = Baseline({"rows": {"row1": {"preparer": "Nurse A", "preparer_id": "u1", "yes": True}}})
    assert _locked(baseline, NURSE_A, ChecklistRowField("row1", "time")) is False
    assert _locked(baseline, NURSE_B, ChecklistRowField("row1", "time")) is True


def test_identified_stranger_with_same_name_stays_locked_out() -> None:
    baseline = Baseline({"rows": {"row1": {"preparer": "Nurse A", "preparer_id": "u1"}}})
    namesake = ActingUser(user_id="u9", full_name="Nurse A")
    assert _locked(baseline, namesake, ChecklistRowField("row1", "yes")) is True


@pytest.mark.parametrize("actor_name", ["nurse a", "  Nurse   A ", "NURSE A"])
def test_rows_without_preparer_id_fall_back_to_normalized_name(actor_name: str) -> None:
    baseline = Baseline({"rows": {"row2": {"preparer": "Nurse A", "yes": True}}})
    actor = ActingUser(user_id="u1", full_name=actor_name)
    assert _locked(baseline, actor, ChecklistRowField("row2", "yes")) is False
    assert _locked(baseline, NURSE_B, ChecklistRowField("row2", "yes")) is True


def test_actor_without_id_or_name_is_locked_out_of_claimed_rows() -> None:
    baseline = Baseline({"rows": {"row2": {"preparer": "Nurse A", "preparer_id": "u1"}}})
    assert _locked(baseline, ActingUser(user_id=None), ChecklistRowField("row2", "no")) is True


def test_record_field_is_first_come_first_served() -> None:
    baseline = Baseline({"hn": "HN001", "ward": "   ", "an": None})
    assert _locked(baseline, NURSE_B, RecordField("hn")) is True
    assert _locked(baseline, NURSE_B, RecordField("ward")) is False
    assert _locked(baseline, NURSE_B, RecordField("an")) is False
    assert _locked(baseline, NURSE_B, RecordField("bed")) is False


def test_inner_field_locks_once_filled() -> None:
    baseline = Baseline({"inner": {"lab": {"lab_cbc": True, "lab_ua": False, "lab_other_detail": ""}}})
    assert _locked(baseline, NURSE_A, InnerField("lab", "lab_cbc")) is True
    assert _locked(baseline, NURSE_A, InnerField("lab", "lab_ua")) is False
    assert _locked(baseline, NURSE_A, InnerField("lab", "lab_other_detail")) is False
    assert _locked(baseline, NURSE_A, InnerField("npo", "npo_solid")) is False


def test_result_field_locks_once_a_vote_is_cast() -> None:
    baseline = Baseline({"result": {"not_complete": True, "complete": False}})
    assert _locked(baseline, NURSE_A, ResultField("not_complete")) is True
    assert _locked(baseline, NURSE_A, ResultField("complete")) is False


@pytest.mark.parametrize("target", ALL_TARGETS)
def test_privileged_actor_is_never_locked(target) -> None:
    baseline = Baseline(
        {
            "hn": "HN001",
            "ward": "Ward 1",
            "rows": {"row1": {"preparer": "Nurse A", "preparer_id": "u1"}},
            "inner": {"lab": {"lab_cbc": True}},
            "result": {"complete": True, "checker": "Dr. C"},
        }
    )
    assert _locked(baseline, NURSE_B, target, privileged=True, finalized=True) is False


@pytest.mark.parametrize("target", ALL_TARGETS)
def test_finalized_record_is_read_only_for_non_privileged(target) -> None:
    assert _locked(Baseline(), NURSE_A, target, finalized=True) is True


def test_missing_or_malformed_baseline_sections_are_treated_as_empty() -> None:
    baseline = Baseline({"rows": "not a mapping", "inner": {"lab": None}, "result": []})
    assert _locked(baseline, NURSE_A, ChecklistRowField("row1", "yes")) is False
    assert _locked(baseline, NURSE_A, InnerField("lab", "lab_cbc")) is False
    assert _locked(baseline, NURSE_A, ResultField("complete")) is False


def test_unknown_target_kind_fails_closed() -> None:
    assert _locked(Baseline(), NURSE_A, object()) is True


def test_lock_decisions_are_repeatable() -> None:
    baseline = Baseline({"hn": "HN001", "rows": {"row3": {"preparer": "Nurse A", "preparer_id": "u1"}}})
    first = build_lock_map(baseline, NURSE_B, is_privileged=False, record_is_finalized=False)
    second = build_lock_map(baseline, NURSE_B, is_privileged=False, record_is_finalized=False)
    assert first == second


def test_lock_map_covers_every_section() -> None:
    baseline = Baseline({"hn": "HN001", "rows": {"row3": {"preparer": "Nurse A", "preparer_id": "u1"}}})
    lock_map = build_lock_map(baseline, NURSE_B, is_privileged=False, record_is_finalized=False)

    assert lock_map["record"]["hn"] is True
    assert lock_map["record"]["ward"] is False
    assert lock_map["rows"]["row3"] == {"yes": True, "no": True, "time": True, "date": True, "preparer": True}
    assert lock_map["rows"]["row4"]["yes"] is False
    assert set(lock_map["inner"]) == {"valuables", "consent", "npo", "iv", "lab", "medication"}
    assert lock_map["result"]["complete"] is False

    admin_map = build_lock_map(baseline, NURSE_B, is_privileged=True, record_is_finalized=True)
    assert not any(_flatten(admin_map))
    finalized_map = build_lock_map(baseline, NURSE_A, is_privileged=False, record_is_finalized=True)
    assert all(_flatten(finalized_map))


def test_baseline_is_an_isolated_read_only_snapshot() -> None:
    source = {"rows": {"row1": {"preparer": "", "yes": False}}}
    baseline = Baseline(source)
    source["rows"]["row1"]["preparer"] = "Nurse B"

    assert baseline.row("row1").preparer == ""
    with pytest.raises(AttributeError):
        baseline._data = {}  # type: ignore[misc]
    with pytest.raises(TypeError):
        baseline.data["rows"]["row1"]["preparer"] = "Nurse B"  # type: ignore[index]


def test_normalize_person_name_collapses_whitespace_and_case() -> None:
    assert normalize_person_name("  Nurse\tA  ") == "nurse a"
    assert normalize_person_name(None) == ""

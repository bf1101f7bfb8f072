from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

CHECKLIST_ROW_KEYS: tuple[str, ...] = (
    "row1",
    "row1_1",
    "row1_2",
    "row1_3",
    "row2",
    "row2_1",
    "row2_2",
    "row2_3",
    "row3",
    "row3_1",
    "row3_2",
    "row3_3",
    "row3_4",
    "row4",
    "row5",
    "row6",
    "row7",
    "row8",
    "row9",
    "row10",
    "row11",
    "row12",
)
CHECKLIST_ROW_FIELDS: tuple[str, ...] = ("yes", "no", "time", "date", "preparer")

# Rows whose inner section they introduce on the paper form.
CONSENT_ROW_KEY = "row8"
NPO_ROW_KEY = "row9"
LAB_ROW_KEY = "row11"

RECORD_FIELDS: tuple[str, ...] = (
    "form_date",
    "form_time",
    "ward",
    "time_field",
    "preparer",
    "hn",
    "an",
    "patient_name",
    "sex",
    "age",
    "dob",
    "department",
    "weight",
    "right_side",
    "allergy",
    "attending_physician",
    "bed",
    "diagnosis",
    "operation",
    "other_notes",
)
REQUIRED_RECORD_FIELDS: tuple[str, ...] = ("form_date", "form_time", "ward", "hn", "patient_name")

INNER_SECTIONS: dict[str, tuple[str, ...]] = {
    "valuables": ("valuables_removed", "valuables_fixed"),
    "consent": ("consent_adult", "consent_married", "consent_child", "consent_child_guardian"),
    "npo": ("npo_solid", "npo_liquid"),
    "iv": ("iv_fluid_detail",),
    "lab": (
        "lab_cbc",
        "lab_ua",
        "lab_electrolyte",
        "lab_pt_ptt",
        "lab_other",
        "lab_other_detail",
        "lab_film",
    ),
    "medication": ("meds_detail",),
}
LAB_FLAG_KEYS: tuple[str, ...] = ("lab_cbc", "lab_ua", "lab_electrolyte", "lab_pt_ptt", "lab_other", "lab_film")
NPO_FLAG_KEYS: tuple[str, ...] = ("npo_solid", "npo_liquid")

RESULT_FIELDS: tuple[str, ...] = ("complete", "not_complete", "checker", "check_time", "check_date")

ALLERGY_NKDA = "NKDA"


@dataclass(slots=True)
class ChecklistRow:
    yes: bool = False
    no: bool = False
    time: str = ""
    date: str = ""
    preparer: str = ""
    preparer_id: str | None = None

    @property
    def is_claimed(self) -> bool:
        return bool(self.preparer.strip())

    @classmethod
    def from_mapping(cls, value: Any) -> ChecklistRow:
        if not isinstance(value, Mapping):
            return cls()
        preparer_id = value.get("preparer_id")
        return cls(
            yes=value.get("yes") is True,
            no=value.get("no") is True,
            time=str(value.get("time") or ""),
            date=str(value.get("date") or ""),
            preparer=str(value.get("preparer") or ""),
            preparer_id=str(preparer_id) if preparer_id not in (None, "") else None,
        )

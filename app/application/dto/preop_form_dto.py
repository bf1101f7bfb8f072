from __future__ import annotations

import copy
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.models.locks import Baseline
from app.domain.models.preop_form import CHECKLIST_ROW_KEYS, RECORD_FIELDS


class ChecklistRowDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    yes: bool = False
    no: bool = False
    time: str = ""
    date: str = ""
    preparer: str = ""
    preparer_id: str | None = None


def _default_rows() -> dict[str, ChecklistRowDto]:
    return {key: ChecklistRowDto() for key in CHECKLIST_ROW_KEYS}


class ValuablesDto(BaseModel):
    valuables_removed: bool = False
    valuables_fixed: bool = False


class ConsentDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    consent_adult: bool = False
    consent_married: bool = False
    consent_child: bool = False
    consent_child_guardian: str = ""


class NpoDto(BaseModel):
    npo_solid: bool = False
    npo_liquid: bool = False


class IvDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    iv_fluid_detail: str = ""


class LabDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    lab_cbc: bool = False
    lab_ua: bool = False
    lab_electrolyte: bool = False
    lab_pt_ptt: bool = False
    lab_other: bool = False
    lab_other_detail: str = ""
    lab_film: bool = False


class MedicationDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    meds_detail: str = ""


class InnerDataDto(BaseModel):
    valuables: ValuablesDto = Field(default_factory=ValuablesDto)
    consent: ConsentDto = Field(default_factory=ConsentDto)
    npo: NpoDto = Field(default_factory=NpoDto)
    iv: IvDto = Field(default_factory=IvDto)
    lab: LabDto = Field(default_factory=LabDto)
    medication: MedicationDto = Field(default_factory=MedicationDto)


class ResultDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    complete: bool = False
    not_complete: bool = False
    checker: str = ""
    check_time: str = ""
    check_date: str = ""


class PreopFormPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    form_date: date | None = None
    form_time: str = ""
    ward: str = ""
    time_field: str = ""
    preparer: str = ""
    hn: str = ""
    an: str = ""
    patient_name: str = ""
    sex: str = ""
    age: str = ""
    dob: str = ""
    department: str = ""
    weight: str = ""
    right_side: str = ""
    allergy: str = ""
    attending_physician: str = ""
    bed: str = ""
    diagnosis: str = ""
    operation: str = ""
    other_notes: str = ""
    rows: dict[str, ChecklistRowDto] = Field(default_factory=_default_rows)
    inner: InnerDataDto = Field(default_factory=InnerDataDto)
    result: ResultDto = Field(default_factory=ResultDto)
    allergy_status: Literal["unknown", "yes", "no"] | None = None


class PreopFormCreateRequest(PreopFormPayload):
    pass


class PreopFormUpdateRequest(PreopFormPayload):
    """Full replacement of the editable part of a form."""


class PreopFormFilters(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str | None = None
    ward: str | None = None
    date_from: date | None = None
    date_to: date | None = None


class PreopFormListItemDto(BaseModel):
    id: str
    hn: str
    an: str | None = None
    patient_name: str
    ward: str
    form_date: str
    form_time: str
    created_at: datetime
    surgery_completed: bool = False
    status: Literal["red", "yellow", "green"]
    status_message: str


class PreopFormPageDto(BaseModel):
    page: int
    limit: int
    total_count: int
    items: list[PreopFormListItemDto] = Field(default_factory=list)


class PreopFormDto(BaseModel):
    id: str
    form_date: str
    form_time: str
    ward: str
    time_field: str | None = None
    preparer: str | None = None
    hn: str
    an: str | None = None
    patient_name: str
    sex: str | None = None
    age: str | None = None
    dob: str | None = None
    department: str | None = None
    weight: str | None = None
    right_side: str | None = None
    allergy: str | None = None
    allergy_status: Literal["unknown", "yes", "no"] = "unknown"
    attending_physician: str | None = None
    bed: str | None = None
    diagnosis: str | None = None
    operation: str | None = None
    other_notes: str | None = None
    rows: dict[str, Any] = Field(default_factory=dict)
    inner: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] = Field(default_factory=dict)
    qr_payload: dict[str, Any] | None = None
    surgery_completed: bool = False
    surgery_completed_at: datetime | None = None
    surgery_completed_by: str | None = None
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    status: Literal["red", "yellow", "green"]
    status_message: str

    @property
    def is_finalized(self) -> bool:
        return self.result.get("complete") is True

    def to_update_request(self) -> PreopFormUpdateRequest:
        """Editable part of this form, ready to be changed and saved back."""
        data: dict[str, Any] = {name: getattr(self, name) or "" for name in RECORD_FIELDS}
        data.update(rows=copy.deepcopy(self.rows), inner=copy.deepcopy(self.inner), result=copy.deepcopy(self.result))
        return PreopFormUpdateRequest.model_validate(data)


class PreopFormEditView(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    form: PreopFormDto
    baseline: Baseline
    locks: dict[str, Any]
    readonly: bool
    privileged: bool

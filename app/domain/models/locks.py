from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeAlias

from app.domain.models.preop_form import ChecklistRow


@dataclass(frozen=True, slots=True)
class ActingUser:
    user_id: str | None
    full_name: str = ""


@dataclass(frozen=True, slots=True)
class RecordField:
    name: str


@dataclass(frozen=True, slots=True)
class ChecklistRowField:
    row_key: str
    field: str


@dataclass(frozen=True, slots=True)
class InnerField:
    section: str
    key: str


@dataclass(frozen=True, slots=True)
class ResultField:
    key: str


LockTarget: TypeAlias = RecordField | ChecklistRowField | InnerField | ResultField


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(key): _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


class Baseline:
    """Read-only snapshot of a form payload taken when an editing session starts.

    The snapshot is a deep copy, so later changes to the source payload never
    leak into lock decisions. Every accessor treats a missing or malformed
    section as empty.
    """

    __slots__ = ("_data",)

    def __init__(self, payload: Mapping[str, Any] | None = None) -> None:
        object.__setattr__(self, "_data", _freeze(copy.deepcopy(dict(payload or {}))))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Baseline is immutable")

    @property
    def data(self) -> Mapping[str, Any]:
        return self._data

    def record_value(self, name: str) -> Any:
        return self._data.get(name)

    def row(self, row_key: str) -> ChecklistRow:
        rows = self._data.get("rows")
        if not isinstance(rows, Mapping):
            return ChecklistRow()
        return ChecklistRow.from_mapping(rows.get(row_key))

    def inner_value(self, section: str, key: str) -> Any:
        inner = self._data.get("inner")
        if not isinstance(inner, Mapping):
            return None
        values = inner.get(section)
        if not isinstance(values, Mapping):
            return None
        return values.get(key)

    def result_value(self, key: str) -> Any:
        result = self._data.get("result")
        if not isinstance(result, Mapping):
            return None
        return result.get(key)

    def is_finalized(self) -> bool:
        return self.result_value("complete") is True

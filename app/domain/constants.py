from __future__ import annotations

from enum import StrEnum


class ReadinessStatus(StrEnum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class AllergyStatus(StrEnum):
    UNKNOWN = "unknown"
    YES = "yes"
    NO = "no"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]

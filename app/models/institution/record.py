from datetime import datetime
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class InstitutionKind(str, Enum):
    HOSPITAL = "hospital"
    HOSPITAL_DEPARTMENT = "hospital_department"


class Operation(str, Enum):
    CREATE = "1"
    UPDATE = "3"


_DISPLAY_NAMES = {
    InstitutionKind.HOSPITAL: "Sygehus",
    InstitutionKind.HOSPITAL_DEPARTMENT: "Afdeling",
}


def kind_display_name(kind: InstitutionKind) -> str:
    """Organisation type as it is stored in the register tables."""
    return _DISPLAY_NAMES[kind]


def kind_from_display_name(display_name: str) -> InstitutionKind:
    for kind, name in _DISPLAY_NAMES.items():
        if name.lower() == display_name.lower():
            return kind
    raise ValueError(f"Unknown organisation type {display_name}")


class InstitutionRecord(BaseModel):
    """
    One decoded line of the SKS register. `valid_to` is exclusive.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    kind: InstitutionKind
    name: str
    valid_from: datetime
    valid_to: datetime
    operation: Operation

    @model_validator(mode="after")
    def check_validity_window(self) -> "InstitutionRecord":
        if self.valid_from >= self.valid_to:
            raise ValueError(
                f"valid_from {self.valid_from} must be before valid_to {self.valid_to}"
            )
        return self


CompositeKey = Tuple[InstitutionKind, str, datetime]


def legacy_key(record: InstitutionRecord) -> str:
    return record.identifier


def composite_key(record: InstitutionRecord) -> CompositeKey:
    return (record.kind, record.identifier, record.valid_from)

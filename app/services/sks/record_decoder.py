"""
Decoder for the fixed position lines of the SKS register (sgh/afd).

Every line holds one hospital ("sgh") or department ("afd") with its number,
validity period, name and an operation code. Example:

afd1301011             200401012004102925000101Anæstesi-/operationsklinik, ABD   ...   084         SKS     1

Operation codes are only present for entries newer than 1995; older lines are
shorter and are ignored, as are lines with a blank operation code. Create and
update are handled the same way. Entries for the same number are not
guaranteed to be in chronological order, but their validity periods never
overlap.
"""
from datetime import datetime
from enum import Enum
from typing import Final, Literal

from app.exceptions import MalformedRecordError
from app.models.institution.record import InstitutionKind, InstitutionRecord, Operation
from app.services.sks.validity import parse_date, to_exclusive_end

RECORD_TYPE_START_INDEX = 0
RECORD_TYPE_END_INDEX = 3

IDENTIFIER_START_INDEX = 3
IDENTIFIER_END_INDEX = 23

VALID_FROM_START_INDEX = 23
VALID_FROM_END_INDEX = 31

VALID_TO_START_INDEX = 39
VALID_TO_END_INDEX = 47

NAME_START_INDEX = 47
# The name field is 120 characters wide, only the first 60 are used.
NAME_END_INDEX = 107

OPERATION_CODE_INDEX = 187

OPERATION_CODE_NONE = " "

RECORD_TYPE_HOSPITAL = "sgh"
RECORD_TYPE_DEPARTMENT = "afd"

_RECORD_TYPES = {
    RECORD_TYPE_HOSPITAL: InstitutionKind.HOSPITAL,
    RECORD_TYPE_DEPARTMENT: InstitutionKind.HOSPITAL_DEPARTMENT,
}

_OPERATIONS = {
    "1": Operation.CREATE,
    "3": Operation.UPDATE,
}


class _Skip(Enum):
    SKIP = "skip"

    def __repr__(self) -> str:
        return "SKIP"


SKIP: Final = _Skip.SKIP
Skip = Literal[_Skip.SKIP]


def decode(raw_line: str) -> InstitutionRecord | Skip:
    """
    Decodes one line into an InstitutionRecord, or SKIP for lines that carry no
    operation code. Raises MalformedRecordError on an unknown record type,
    operation code or date.
    """
    line = raw_line.rstrip("\r\n")

    record_type = line[RECORD_TYPE_START_INDEX:RECORD_TYPE_END_INDEX]
    kind = _RECORD_TYPES.get(record_type)
    if kind is None:
        raise MalformedRecordError("Unknown record type", line)

    if len(line) < OPERATION_CODE_INDEX + 1:
        return SKIP

    code = line[OPERATION_CODE_INDEX]
    if code == OPERATION_CODE_NONE:
        return SKIP

    operation = _OPERATIONS.get(code)
    if operation is None:
        raise MalformedRecordError(
            f"SKS parser encountered an unknown operation code. code={code}", line
        )

    valid_from = _parse_date_field(line, VALID_FROM_START_INDEX, VALID_FROM_END_INDEX)
    valid_to_inclusive = _parse_date_field(line, VALID_TO_START_INDEX, VALID_TO_END_INDEX)
    try:
        valid_to = to_exclusive_end(valid_to_inclusive)
    except OverflowError as e:
        raise MalformedRecordError(f"Valid to date out of range: {e}", line) from e

    if valid_to <= valid_from:
        raise MalformedRecordError(
            f"Valid to {valid_to_inclusive:%Y%m%d} is before valid from {valid_from:%Y%m%d}",
            line,
        )

    return InstitutionRecord(
        identifier=line[IDENTIFIER_START_INDEX:IDENTIFIER_END_INDEX].strip(),
        kind=kind,
        name=line[NAME_START_INDEX:NAME_END_INDEX].strip(),
        valid_from=valid_from,
        valid_to=valid_to,
        operation=operation,
    )


def _parse_date_field(line: str, start: int, end: int) -> datetime:
    try:
        return parse_date(line[start:end])
    except ValueError as e:
        raise MalformedRecordError(str(e), line) from e

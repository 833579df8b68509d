from typing import Dict, Iterator, List

from app.models.institution.record import (
    CompositeKey,
    InstitutionRecord,
    composite_key,
    legacy_key,
)


class Dataset:
    """
    Append-only, insertion ordered batch of records decoded from one input file.
    """

    def __init__(self) -> None:
        self.__records: List[InstitutionRecord] = []

    def add(self, record: InstitutionRecord) -> None:
        self.__records.append(record)

    def __len__(self) -> int:
        return len(self.__records)

    def __iter__(self) -> Iterator[InstitutionRecord]:
        return iter(self.__records)

    def current_by_legacy_key(self) -> Dict[str, InstitutionRecord]:
        """
        Identifier to record, where a later line overwrites an earlier one
        regardless of its validity window.
        """
        return {legacy_key(record): record for record in self.__records}

    def by_composite_key(self) -> Dict[CompositeKey, InstitutionRecord]:
        return {composite_key(record): record for record in self.__records}

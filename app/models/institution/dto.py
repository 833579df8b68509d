from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class InstitutionDto(BaseModel):
    identifier: str
    name: str
    kind: str
    valid_from: datetime
    valid_to: datetime
    created_date: datetime
    modified_date: datetime


class InstitutionHistoryDto(InstitutionDto):
    id: UUID

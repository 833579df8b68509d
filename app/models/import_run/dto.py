from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ImportRunDto(BaseModel):
    id: UUID
    run_id: str
    importer: str
    input_name: str
    status: str
    records_processed: int | None = None
    error: str | None = None
    started_at: datetime
    finished_at: datetime | None = None


class ImportResultDto(BaseModel):
    run_id: str
    filename: str
    records_processed: int
    transaction_time: datetime

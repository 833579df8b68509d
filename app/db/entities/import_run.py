from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import String, TIMESTAMP, Integer, PrimaryKeyConstraint, Text, types
from sqlalchemy.orm import Mapped, mapped_column

from app.db.entities.base import Base
from app.models.import_run.dto import ImportRunDto


class ImportRun(Base):
    __tablename__ = "import_runs"
    __table_args__ = (PrimaryKeyConstraint("id"),)

    id: Mapped[UUID] = mapped_column(
        "id",
        types.Uuid,
        nullable=False,
        default=uuid4,
    )
    run_id: Mapped[str] = mapped_column("run_id", String, nullable=False)
    importer: Mapped[str] = mapped_column("importer", String, nullable=False)
    input_name: Mapped[str] = mapped_column("input_name", String, nullable=False)
    status: Mapped[str] = mapped_column("status", String, nullable=False)
    records_processed: Mapped[int | None] = mapped_column(
        "records_processed", Integer, nullable=True, default=None
    )
    error: Mapped[str | None] = mapped_column(
        "error", Text, nullable=True, default=None
    )
    started_at: Mapped[datetime] = mapped_column(
        "started_at",
        TIMESTAMP(timezone=True),
        nullable=False,
        default=datetime.now,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        "finished_at",
        TIMESTAMP(timezone=True),
        nullable=True,
        default=None,
    )

    def to_dto(self) -> ImportRunDto:
        return ImportRunDto(
            id=self.id,
            run_id=self.run_id,
            importer=self.importer,
            input_name=self.input_name,
            status=self.status,
            records_processed=self.records_processed,
            error=self.error,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )

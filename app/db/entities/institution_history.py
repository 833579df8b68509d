from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    String,
    TIMESTAMP,
    PrimaryKeyConstraint,
    UniqueConstraint,
    types,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.entities.base import Base
from app.models.institution.dto import InstitutionHistoryDto


class InstitutionHistory(Base):
    """
    Every validity window ever seen for an identifier. Rows are never deleted.
    """

    __tablename__ = "institution_history"
    __table_args__ = (
        PrimaryKeyConstraint("id"),
        UniqueConstraint("identifier", "valid_from"),
    )

    id: Mapped[UUID] = mapped_column(
        "id",
        types.Uuid,
        nullable=False,
        default=uuid4,
    )
    identifier: Mapped[str] = mapped_column(
        "identifier", String, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column("name", String, nullable=False)
    kind: Mapped[str] = mapped_column("kind", String, nullable=False)
    valid_from: Mapped[datetime] = mapped_column(
        "valid_from", TIMESTAMP, nullable=False
    )
    valid_to: Mapped[datetime] = mapped_column("valid_to", TIMESTAMP, nullable=False)
    created_date: Mapped[datetime] = mapped_column(
        "created_date", TIMESTAMP, nullable=False
    )
    modified_date: Mapped[datetime] = mapped_column(
        "modified_date", TIMESTAMP, nullable=False
    )

    def to_dto(self) -> InstitutionHistoryDto:
        return InstitutionHistoryDto(
            id=self.id,
            identifier=self.identifier,
            name=self.name,
            kind=self.kind,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            created_date=self.created_date,
            modified_date=self.modified_date,
        )

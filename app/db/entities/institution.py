from datetime import datetime

from sqlalchemy import String, TIMESTAMP, PrimaryKeyConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.entities.base import Base
from app.models.institution.dto import InstitutionDto


class Institution(Base):
    """
    Current state of a hospital or department: one row per identifier.
    """

    __tablename__ = "institutions"
    __table_args__ = (PrimaryKeyConstraint("identifier"),)

    identifier: Mapped[str] = mapped_column(
        "identifier",
        String,
        nullable=False,
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

    def to_dto(self) -> InstitutionDto:
        return InstitutionDto(
            identifier=self.identifier,
            name=self.name,
            kind=self.kind,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            created_date=self.created_date,
            modified_date=self.modified_date,
        )

from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select

from app.db.decorator import repository
from app.db.entities.institution_history import InstitutionHistory
from app.db.repositories.repository_base import RepositoryBase


@repository(InstitutionHistory)
class InstitutionHistoryRepository(RepositoryBase):
    def get(self, identifier: str, valid_from: datetime) -> InstitutionHistory | None:
        query = select(InstitutionHistory).filter_by(
            identifier=identifier, valid_from=valid_from
        )
        return self.db_session.session.execute(query).scalars().first()

    def find_by_identifier(self, identifier: str) -> Sequence[InstitutionHistory]:
        query = (
            select(InstitutionHistory)
            .filter_by(identifier=identifier)
            .order_by(InstitutionHistory.valid_from)
        )
        return self.db_session.session.execute(query).scalars().all()

    def find_containing(
        self, identifier: str, instant: datetime
    ) -> Sequence[InstitutionHistory]:
        """Rows for the identifier whose window strictly contains the instant."""
        query = select(InstitutionHistory).where(
            InstitutionHistory.identifier == identifier,
            InstitutionHistory.valid_from < instant,
            InstitutionHistory.valid_to > instant,
        )
        return self.db_session.session.execute(query).scalars().all()

    def count(self, identifier: str | None = None) -> int:
        query = select(func.count()).select_from(InstitutionHistory)
        if identifier is not None:
            query = query.where(InstitutionHistory.identifier == identifier)
        return self.db_session.session.execute(query).scalar_one()

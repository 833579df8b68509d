from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select

from app.db.decorator import repository
from app.db.entities.institution import Institution
from app.db.repositories.repository_base import RepositoryBase


@repository(Institution)
class InstitutionRepository(RepositoryBase):
    def get(self, identifier: str) -> Institution | None:
        query = select(Institution).filter_by(identifier=identifier)
        return self.db_session.session.execute(query).scalars().first()

    def find(
        self, kind: str | None = None, valid_at: datetime | None = None
    ) -> Sequence[Institution]:
        query = select(Institution).order_by(Institution.identifier)
        if kind is not None:
            query = query.where(Institution.kind == kind)
        if valid_at is not None:
            query = query.where(
                Institution.valid_from <= valid_at, Institution.valid_to > valid_at
            )
        return self.db_session.session.execute(query).scalars().all()

    def count(self, kind: str | None = None) -> int:
        query = select(func.count()).select_from(Institution)
        if kind is not None:
            query = query.where(Institution.kind == kind)
        return self.db_session.session.execute(query).scalar_one()

    def count_invalidated(self, now: datetime) -> int:
        query = (
            select(func.count())
            .select_from(Institution)
            .where(Institution.valid_to <= now)
        )
        return self.db_session.session.execute(query).scalar_one()

    def latest_modified_date(self) -> datetime | None:
        query = select(func.max(Institution.modified_date))
        return self.db_session.session.execute(query).scalar()

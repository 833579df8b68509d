import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import DatabaseError

from app.db.decorator import repository
from app.db.entities.import_run import ImportRun
from app.db.repositories.repository_base import RepositoryBase

logger = logging.getLogger(__name__)


@repository(ImportRun)
class ImportRunRepository(RepositoryBase):
    def get(self, id: UUID) -> ImportRun | None:
        return self.db_session.session.get(ImportRun, id)

    def find_latest(self, limit: int = 20) -> Sequence[ImportRun]:
        query = (
            select(ImportRun)
            .order_by(ImportRun.started_at.desc())
            .limit(limit)
        )
        return self.db_session.session.execute(query).scalars().all()

    def find_by_run_id(self, run_id: str) -> Sequence[ImportRun]:
        query = (
            select(ImportRun)
            .filter_by(run_id=run_id)
            .order_by(ImportRun.started_at)
        )
        return self.db_session.session.execute(query).scalars().all()

    def create(self, data: ImportRun) -> ImportRun:
        try:
            self.db_session.add(data)
            self.db_session.commit()
            return data
        except DatabaseError as e:
            self.db_session.rollback()
            logger.error(f"Failed to add import run {data.run_id}: {e}")
            raise

    def update(self, data: ImportRun) -> ImportRun:
        try:
            self.db_session.add(data)
            self.db_session.commit()
            self.db_session.session.refresh(data)
            return data
        except DatabaseError as e:
            self.db_session.rollback()
            logger.error(f"Failed to update import run {data.run_id}: {e}")
            raise

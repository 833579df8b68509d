from datetime import datetime
import logging
from typing import List
from uuid import UUID

from app.db.db import Database
from app.db.entities.import_run import ImportRun
from app.db.repositories.import_run_repository import ImportRunRepository
from app.db.session import DbSession
from app.models.import_run.dto import ImportRunDto
from app.services.sks.capabilities import RunAudit, RunAuditItem

logger = logging.getLogger(__name__)

STATUS_RUNNING = "running"
STATUS_OK = "ok"
STATUS_ERROR = "error"


class ImportRunAuditItem(RunAuditItem):
    def __init__(self, database: Database, id: UUID) -> None:
        self.__database = database
        self.__id = id

    @property
    def id(self) -> UUID:
        return self.__id

    def succeed(self, records_processed: int) -> None:
        self.__finish(status=STATUS_OK, records_processed=records_processed)

    def fail(self, error: str) -> None:
        self.__finish(status=STATUS_ERROR, error=error)

    def __finish(
        self, status: str, records_processed: int | None = None, error: str | None = None
    ) -> None:
        def finish(session: DbSession) -> None:
            repository = session.get_repository(ImportRunRepository)
            run = repository.get(self.__id)
            if run is None:
                logger.warning(f"Import run {self.__id} disappeared before it finished")
                return
            run.status = status
            run.records_processed = records_processed
            run.error = error
            run.finished_at = datetime.now()
            repository.update(run)

        self.__database.run_with_retry(finish)


class ImportRunService(RunAudit):
    """
    Stores the outcome of every import run, which allows checking afterwards
    which files were processed, when and with how many records.
    """

    def __init__(self, database: Database) -> None:
        self.__database = database

    def start(self, importer: str, run_id: str, input_name: str) -> ImportRunAuditItem:
        def create(session: DbSession) -> UUID:
            repository = session.get_repository(ImportRunRepository)
            run = repository.create(
                ImportRun(
                    run_id=run_id,
                    importer=importer,
                    input_name=input_name,
                    status=STATUS_RUNNING,
                    started_at=datetime.now(),
                )
            )
            return run.id

        return ImportRunAuditItem(self.__database, self.__database.run_with_retry(create))

    def get_latest(self, limit: int = 20) -> List[ImportRunDto]:
        with self.__database.get_db_session() as session:
            repository = session.get_repository(ImportRunRepository)
            return [run.to_dto() for run in repository.find_latest(limit)]

    def find_by_run_id(self, run_id: str) -> List[ImportRunDto]:
        with self.__database.get_db_session() as session:
            repository = session.get_repository(ImportRunRepository)
            return [run.to_dto() for run in repository.find_by_run_id(run_id)]

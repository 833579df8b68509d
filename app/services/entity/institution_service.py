from datetime import datetime
import logging
from typing import List

from fastapi import HTTPException
from sqlalchemy.exc import DatabaseError

from app.db.db import Database
from app.db.entities.institution import Institution
from app.db.entities.institution_history import InstitutionHistory
from app.db.repositories.institution_history_repository import (
    InstitutionHistoryRepository,
)
from app.db.repositories.institution_repository import InstitutionRepository
from app.db.session import DbSession
from app.models.institution.dataset import Dataset
from app.models.institution.dto import InstitutionDto, InstitutionHistoryDto
from app.models.institution.record import InstitutionRecord, kind_display_name
from app.services.sks.capabilities import RecordSink

logger = logging.getLogger(__name__)


class InstitutionService(RecordSink):
    """
    Keeps the institution history and current tables in the database.

    Every record is stored in the history table, keyed by identifier and
    valid_from. The current table holds one row per identifier with the values
    of the last record for that identifier in the dataset, which is not
    necessarily the one with the latest validity window.
    """

    def __init__(self, database: Database) -> None:
        self.__database = database
        self.__transaction_time: datetime | None = None

    def reset_transaction_time(self) -> datetime:
        self.__transaction_time = datetime.now()
        return self.__transaction_time

    @property
    def transaction_time(self) -> datetime:
        if self.__transaction_time is None:
            return self.reset_transaction_time()
        return self.__transaction_time

    def persist_delta_dataset(
        self, dataset: Dataset, transaction_time: datetime | None = None
    ) -> None:
        stamp = transaction_time if transaction_time is not None else self.transaction_time

        def apply(session: DbSession) -> None:
            history_repository = session.get_repository(InstitutionHistoryRepository)
            for record in dataset:
                self.__merge_history(session, history_repository, record, stamp)

            current_repository = session.get_repository(InstitutionRepository)
            for record in dataset.current_by_legacy_key().values():
                self.__merge_current(session, current_repository, record, stamp)

            session.commit()

        try:
            self.__database.run_with_retry(apply)
        except DatabaseError as e:
            logger.error(f"Failed to persist dataset of {len(dataset)} records: {e}")
            raise

        logger.info(
            f"Persisted {len(dataset)} records with transaction time {stamp.isoformat()}"
        )

    def __merge_history(
        self,
        session: DbSession,
        repository: InstitutionHistoryRepository,
        record: InstitutionRecord,
        transaction_time: datetime,
    ) -> None:
        for earlier in repository.find_containing(record.identifier, record.valid_from):
            logger.debug(
                f"Closing window of {earlier.identifier} from {earlier.valid_from} at {record.valid_from}"
            )
            earlier.valid_to = record.valid_from
            earlier.modified_date = transaction_time

        kind = kind_display_name(record.kind)
        row = repository.get(record.identifier, record.valid_from)
        if row is None:
            session.add(
                InstitutionHistory(
                    identifier=record.identifier,
                    name=record.name,
                    kind=kind,
                    valid_from=record.valid_from,
                    valid_to=record.valid_to,
                    created_date=transaction_time,
                    modified_date=transaction_time,
                )
            )
            session.flush()
            return

        if row.name != record.name or row.kind != kind or row.valid_to != record.valid_to:
            row.name = record.name
            row.kind = kind
            row.valid_to = record.valid_to
            row.modified_date = transaction_time

    def __merge_current(
        self,
        session: DbSession,
        repository: InstitutionRepository,
        record: InstitutionRecord,
        transaction_time: datetime,
    ) -> None:
        kind = kind_display_name(record.kind)
        row = repository.get(record.identifier)
        if row is None:
            session.add(
                Institution(
                    identifier=record.identifier,
                    name=record.name,
                    kind=kind,
                    valid_from=record.valid_from,
                    valid_to=record.valid_to,
                    created_date=transaction_time,
                    modified_date=transaction_time,
                )
            )
            return

        if (
            row.name != record.name
            or row.kind != kind
            or row.valid_from != record.valid_from
            or row.valid_to != record.valid_to
        ):
            row.name = record.name
            row.kind = kind
            row.valid_from = record.valid_from
            row.valid_to = record.valid_to
            row.modified_date = transaction_time

    def get_one(self, identifier: str) -> InstitutionDto:
        with self.__database.get_db_session() as session:
            repository = session.get_repository(InstitutionRepository)
            institution = repository.get(identifier)
            if institution is None:
                raise HTTPException(
                    status_code=404, detail=f"Institution {identifier} not found"
                )
            return institution.to_dto()

    def find(
        self, kind: str | None = None, valid_at: datetime | None = None
    ) -> List[InstitutionDto]:
        with self.__database.get_db_session() as session:
            repository = session.get_repository(InstitutionRepository)
            return [i.to_dto() for i in repository.find(kind=kind, valid_at=valid_at)]

    def get_history(self, identifier: str) -> List[InstitutionHistoryDto]:
        with self.__database.get_db_session() as session:
            repository = session.get_repository(InstitutionHistoryRepository)
            return [h.to_dto() for h in repository.find_by_identifier(identifier)]

    def count(self, kind: str | None = None) -> int:
        with self.__database.get_db_session() as session:
            return session.get_repository(InstitutionRepository).count(kind=kind)

    def count_history(self, identifier: str | None = None) -> int:
        with self.__database.get_db_session() as session:
            return session.get_repository(InstitutionHistoryRepository).count(
                identifier=identifier
            )

    def count_invalidated(self, now: datetime | None = None) -> int:
        """Current rows whose validity window has elapsed at `now`."""
        with self.__database.get_db_session() as session:
            repository = session.get_repository(InstitutionRepository)
            return repository.count_invalidated(now if now is not None else datetime.now())

    def latest_modified_date(self) -> datetime | None:
        with self.__database.get_db_session() as session:
            return session.get_repository(InstitutionRepository).latest_modified_date()

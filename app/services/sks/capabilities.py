import abc
from abc import ABC
from datetime import datetime

from app.models.institution.dataset import Dataset


class RecordSink(ABC):
    """
    Persistence collaborator that merges an import batch into the history and
    current tables.
    """

    @abc.abstractmethod
    def reset_transaction_time(self) -> datetime:
        """
        Fixes the modification timestamp shared by every row touched until the
        next reset, and returns it.
        """
        pass

    @abc.abstractmethod
    def persist_delta_dataset(
        self, dataset: Dataset, transaction_time: datetime | None = None
    ) -> None:
        """
        Applies the dataset atomically, stamping touched rows with
        `transaction_time` (the last reset value when omitted). Raises when
        nothing could be persisted.
        """
        pass


class RunAuditItem(ABC):
    """
    Outcome of a single import run. Exactly one of succeed() or fail() is called.
    """

    @abc.abstractmethod
    def succeed(self, records_processed: int) -> None:
        pass

    @abc.abstractmethod
    def fail(self, error: str) -> None:
        pass


class RunAudit(ABC):
    @abc.abstractmethod
    def start(self, importer: str, run_id: str, input_name: str) -> RunAuditItem:
        pass

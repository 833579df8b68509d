import logging
from pathlib import Path
from threading import Lock

from app.exceptions import (
    ImportProcessingError,
    InvalidInputStructureError,
    MalformedRecordError,
)
from app.models.import_run.dto import ImportResultDto
from app.services.sks.capabilities import RecordSink, RunAudit, RunAuditItem
from app.services.sks.dataset_builder import build
from app.services.sks.input_structure import list_input_files, validate_input_structure
from app.stats import Stats

logger = logging.getLogger(__name__)

DEFAULT_FILE_ENCODING = "iso8859_15"


class SksImporter:
    """
    Imports one SKS register file (full snapshot or delta) into the history and
    current tables. Both file kinds are processed the same way.
    """

    home = "sksimporter"

    def __init__(
        self,
        record_sink: RecordSink,
        run_audit: RunAudit,
        stats: Stats,
        file_encoding: str = DEFAULT_FILE_ENCODING,
    ) -> None:
        self.__record_sink = record_sink
        self.__run_audit = run_audit
        self.__stats = stats
        self.__file_encoding = file_encoding
        self.__lock = Lock()

    def validate_input_structure(self, datadir: Path) -> bool:
        return validate_input_structure(datadir)

    def process(self, datadir: Path, run_id: str) -> ImportResultDto:
        """
        Runs one import. Runs are serialized, so every row touched by a run
        carries that run's transaction time.
        """
        with self.__lock:
            return self.__process(datadir, run_id)

    def __process(self, datadir: Path, run_id: str) -> ImportResultDto:
        if not self.validate_input_structure(datadir):
            raise InvalidInputStructureError(f"Input structure is invalid: {datadir}")

        input_file = list_input_files(datadir)[0]
        try:
            audit = self.__run_audit.start(
                importer=self.home, run_id=run_id, input_name=str(datadir.absolute())
            )
        except Exception as e:
            self.__stats.inc(f"{self.home}.run.error")
            raise ImportProcessingError(f"Unable to record start of run {run_id}: {e}") from e
        logger.info(f"Importing {input_file.name} for run {run_id}")

        try:
            with self.__stats.timer(f"{self.home}.process"):
                transaction_time = self.__record_sink.reset_transaction_time()
                with open(input_file, "r", encoding=self.__file_encoding, newline="") as lines:
                    dataset = build(lines)
                self.__record_sink.persist_delta_dataset(dataset, transaction_time)
        except MalformedRecordError as e:
            self.__fail(audit, e)
            raise
        except Exception as e:
            self.__fail(audit, e)
            raise ImportProcessingError(f"Failed to import {input_file.name}: {e}") from e

        processed = len(dataset)
        audit.succeed(records_processed=processed)
        self.__stats.inc(f"{self.home}.run.ok")
        self.__stats.inc(f"{self.home}.records_processed", processed)
        logger.info(f"Imported {processed} records from {input_file.name} for run {run_id}")

        return ImportResultDto(
            run_id=run_id,
            filename=input_file.name,
            records_processed=processed,
            transaction_time=transaction_time,
        )

    def __fail(self, audit: RunAuditItem, error: Exception) -> None:
        logger.error(f"SKS import failed: {error}")
        self.__stats.inc(f"{self.home}.run.error")
        try:
            audit.fail(f"SKSParser failed - Cause: {error}")
        except Exception:
            logger.exception("Unable to record the failed import run")

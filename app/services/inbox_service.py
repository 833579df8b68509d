import logging
import shutil
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from app.exceptions import ImporterError
from app.models.import_run.dto import ImportResultDto
from app.services.sks.input_structure import list_input_files
from app.services.sks.sks_importer import SksImporter

logger = logging.getLogger(__name__)


def generate_run_id() -> str:
    return f"{datetime.now():%Y%m%dT%H%M%S}-{uuid4().hex[:8]}"


class InboxService:
    """
    Imports the register file waiting in the configured inbox directory.
    """

    def __init__(
        self,
        importer: SksImporter,
        inbox_path: str,
        processed_path: str | None = None,
    ) -> None:
        self.__importer = importer
        self.__inbox = Path(inbox_path)
        self.__processed = Path(processed_path) if processed_path else None

    @property
    def inbox(self) -> Path:
        return self.__inbox

    def has_pending_file(self) -> bool:
        return self.__inbox.is_dir() and len(list_input_files(self.__inbox)) > 0

    def import_inbox(self, run_id: str | None = None) -> ImportResultDto:
        run_id = run_id or generate_run_id()
        result = self.__importer.process(self.__inbox, run_id)
        if self.__processed is not None:
            self.__archive(result, self.__processed)
        return result

    def poll(self) -> ImportResultDto | None:
        """
        Imports the inbox when a file is waiting. Errors are logged, not raised, so a
        background poller keeps running; the failed file stays in the inbox.
        """
        if not self.has_pending_file():
            logger.debug(f"No file waiting in {self.__inbox}")
            return None

        try:
            return self.import_inbox()
        except ImporterError:
            logger.exception(f"Import of {self.__inbox} failed")
            return None

    def __archive(self, result: ImportResultDto, processed: Path) -> None:
        target = processed / result.run_id
        target.mkdir(parents=True, exist_ok=True)
        shutil.move(str(self.__inbox / result.filename), str(target / result.filename))
        logger.info(f"Moved {result.filename} to {target}")

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from app.exceptions import MalformedRecordError
from app.services.inbox_service import InboxService, generate_run_id
from app.services.sks.sks_importer import SksImporter
from tests.sks_lines import SNAPSHOT_APPLICABLE, sks_line, write_register, write_snapshot


def test_poll_should_do_nothing_when_inbox_is_empty(importer: SksImporter, inbox: Path) -> None:
    service = InboxService(importer=importer, inbox_path=str(inbox))

    assert service.has_pending_file() is False
    assert service.poll() is None


def test_poll_should_do_nothing_when_inbox_does_not_exist(importer: SksImporter, tmp_path: Path) -> None:
    service = InboxService(importer=importer, inbox_path=str(tmp_path / "missing"))

    assert service.poll() is None


def test_poll_should_import_waiting_file(importer: SksImporter, inbox: Path) -> None:
    write_snapshot(inbox)
    service = InboxService(importer=importer, inbox_path=str(inbox))

    result = service.poll()

    assert result is not None
    assert result.records_processed == SNAPSHOT_APPLICABLE
    assert (inbox / "SHAKCOMPLETE.TXT").exists()


def test_poll_should_log_and_keep_failed_file(
    importer: SksImporter, inbox: Path, tmp_path: Path
) -> None:
    write_register(inbox, [sks_line(record_type="xyz")])
    service = InboxService(
        importer=importer, inbox_path=str(inbox), processed_path=str(tmp_path / "processed")
    )

    assert service.poll() is None
    assert (inbox / "SHAKCOMPLETE.TXT").exists()
    assert not (tmp_path / "processed").exists()


def test_import_inbox_should_archive_processed_file(
    importer: SksImporter, inbox: Path, tmp_path: Path
) -> None:
    write_snapshot(inbox)
    service = InboxService(
        importer=importer, inbox_path=str(inbox), processed_path=str(tmp_path / "processed")
    )

    result = service.import_inbox("run-7")

    assert result.run_id == "run-7"
    assert not (inbox / "SHAKCOMPLETE.TXT").exists()
    assert (tmp_path / "processed" / "run-7" / "SHAKCOMPLETE.TXT").exists()


def test_import_inbox_should_generate_run_id_when_missing(inbox: Path) -> None:
    importer = MagicMock()
    service = InboxService(importer=importer, inbox_path=str(inbox))

    service.import_inbox()

    run_id = importer.process.call_args.args[1]
    assert isinstance(run_id, str) and len(run_id) > 0


def test_import_inbox_should_propagate_malformed_record(inbox: Path) -> None:
    importer = MagicMock()
    importer.process.side_effect = MalformedRecordError("Unknown record type", "xyz")
    service = InboxService(importer=importer, inbox_path=str(inbox))

    with pytest.raises(MalformedRecordError):
        service.import_inbox("run-1")


def test_generate_run_id_should_be_unique() -> None:
    assert generate_run_id() != generate_run_id()

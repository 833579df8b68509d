from datetime import datetime
from pathlib import Path
import threading
import time
from typing import Any, List
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import (
    ImportProcessingError,
    InvalidInputStructureError,
    MalformedRecordError,
)
from app.services.entity.import_run_service import ImportRunService
from app.services.entity.institution_service import InstitutionService
from app.services.sks.dataset_builder import build
from app.services.sks.sks_importer import SksImporter
from app.stats import MemoryClient, NoopStats, Statsd
from tests.sks_lines import (
    SNAPSHOT_APPLICABLE,
    sks_line,
    write_delta,
    write_register,
    write_snapshot,
)


def test_process_should_import_the_applicable_records(
    importer: SksImporter, institution_service: InstitutionService, tmp_path: Path
) -> None:
    write_snapshot(tmp_path)

    result = importer.process(tmp_path, "run-1")

    assert result.records_processed == SNAPSHOT_APPLICABLE
    assert result.filename == "SHAKCOMPLETE.TXT"
    assert result.run_id == "run-1"
    assert institution_service.count(kind="Sygehus") == 2
    assert institution_service.count(kind="Afdeling") == 2
    assert institution_service.count_history() == SNAPSHOT_APPLICABLE


def test_process_should_store_inclusive_dates_as_half_open_window(
    importer: SksImporter, institution_service: InstitutionService, tmp_path: Path
) -> None:
    write_snapshot(tmp_path)

    importer.process(tmp_path, "run-1")
    rigshospitalet = institution_service.get_one("1301")

    assert rigshospitalet.name == "Rigshospitalet"
    assert datetime(2500, 1, 1, 23, 59, 59) < rigshospitalet.valid_to < datetime(2500, 1, 2, 0, 0, 1)
    assert datetime(1976, 3, 31, 23, 59, 59) < rigshospitalet.valid_from < datetime(1976, 4, 1, 0, 0, 1)


def test_process_should_read_iso_8859_15(
    importer: SksImporter, institution_service: InstitutionService, tmp_path: Path
) -> None:
    write_snapshot(tmp_path)

    importer.process(tmp_path, "run-1")

    assert institution_service.get_one("7001").name == "Ærø Sygehus"


def test_delta_should_invalidate_records_and_change_modified_date(
    importer: SksImporter, institution_service: InstitutionService, tmp_path: Path
) -> None:
    write_snapshot(tmp_path / "complete")
    write_delta(tmp_path / "delta")

    importer.process(tmp_path / "complete", "run-1")
    modified_first = institution_service.latest_modified_date()
    invalidated_first = institution_service.count_invalidated(datetime.now())

    time.sleep(0.01)
    importer.process(tmp_path / "delta", "run-2")
    modified_second = institution_service.latest_modified_date()
    invalidated_second = institution_service.count_invalidated(datetime.now())

    assert invalidated_second > invalidated_first
    assert modified_first != modified_second
    assert institution_service.get_one("7001").name == "Ærøskøbing Sygehus"
    assert institution_service.get_one("1301012").valid_to == datetime(2021, 1, 1)


def test_rows_touched_by_one_run_should_share_modified_date(
    importer: SksImporter, institution_service: InstitutionService, tmp_path: Path
) -> None:
    write_snapshot(tmp_path / "complete")
    write_delta(tmp_path / "delta")

    importer.process(tmp_path / "complete", "run-1")
    time.sleep(0.01)
    result = importer.process(tmp_path / "delta", "run-2")

    touched = [institution_service.get_one(i) for i in ("1301012", "7001")]
    untouched = institution_service.get_one("1301")

    assert {t.modified_date for t in touched} == {result.transaction_time}
    assert untouched.modified_date < result.transaction_time


def test_process_should_audit_successful_run(
    importer: SksImporter,
    import_run_service: ImportRunService,
    memory_client: MemoryClient,
    tmp_path: Path,
) -> None:
    write_snapshot(tmp_path)

    importer.process(tmp_path, "run-1")
    runs = import_run_service.find_by_run_id("run-1")

    assert len(runs) == 1
    assert runs[0].status == "ok"
    assert runs[0].importer == "sksimporter"
    assert runs[0].records_processed == SNAPSHOT_APPLICABLE
    assert runs[0].input_name == str(tmp_path.absolute())
    assert runs[0].finished_at is not None
    assert memory_client.get_memory()["sksimporter.run.ok"] == 1
    assert memory_client.get_memory()["sksimporter.records_processed"] == SNAPSHOT_APPLICABLE
    assert len(memory_client.get_memory()["sksimporter.process"]) == 1


def test_process_should_reject_invalid_structure_before_auditing(
    importer: SksImporter, import_run_service: ImportRunService, tmp_path: Path
) -> None:
    write_register(tmp_path, [sks_line()], "SHAKCOMPLETE.XML")

    with pytest.raises(InvalidInputStructureError):
        importer.process(tmp_path, "run-1")

    assert import_run_service.get_latest() == []


def test_process_should_reject_empty_directory(importer: SksImporter, tmp_path: Path) -> None:
    with pytest.raises(InvalidInputStructureError):
        importer.process(tmp_path, "run-1")


def test_malformed_record_should_abort_without_persisting(
    importer: SksImporter,
    institution_service: InstitutionService,
    import_run_service: ImportRunService,
    memory_client: MemoryClient,
    tmp_path: Path,
) -> None:
    write_register(tmp_path, [sks_line(identifier="1"), sks_line(identifier="2", code="2")])

    with pytest.raises(MalformedRecordError) as exc_info:
        importer.process(tmp_path, "run-1")

    runs = import_run_service.find_by_run_id("run-1")
    assert exc_info.value.line_number == 2
    assert institution_service.count() == 0
    assert institution_service.count_history() == 0
    assert runs[0].status == "error"
    assert runs[0].error is not None
    assert runs[0].error.startswith("SKSParser failed - Cause: ")
    assert memory_client.get_memory()["sksimporter.run.error"] == 1


def test_persistence_failure_should_be_wrapped(tmp_path: Path) -> None:
    record_sink = MagicMock()
    record_sink.reset_transaction_time.return_value = datetime.now()
    record_sink.persist_delta_dataset.side_effect = OperationalError("INSERT", {}, Exception("gone"))
    run_audit = MagicMock()
    audit_item = run_audit.start.return_value
    importer = SksImporter(record_sink=record_sink, run_audit=run_audit, stats=NoopStats())
    write_snapshot(tmp_path)

    with pytest.raises(ImportProcessingError) as exc_info:
        importer.process(tmp_path, "run-1")

    assert isinstance(exc_info.value.__cause__, OperationalError)
    audit_item.fail.assert_called_once()
    audit_item.succeed.assert_not_called()


def test_process_should_reset_transaction_time_before_persisting(tmp_path: Path) -> None:
    calls = MagicMock()
    calls.reset_transaction_time.return_value = datetime.now()
    importer = SksImporter(record_sink=calls, run_audit=MagicMock(), stats=NoopStats())
    write_snapshot(tmp_path)

    importer.process(tmp_path, "run-1")

    assert [c[0] for c in calls.method_calls] == [
        "reset_transaction_time",
        "persist_delta_dataset",
    ]
    dataset = calls.persist_delta_dataset.call_args.args[0]
    assert len(dataset) == SNAPSHOT_APPLICABLE


def test_decoding_error_in_file_encoding_should_be_wrapped(
    institution_service: InstitutionService,
    import_run_service: ImportRunService,
    tmp_path: Path,
) -> None:
    importer = SksImporter(
        record_sink=institution_service,
        run_audit=import_run_service,
        stats=Statsd(MemoryClient()),
        file_encoding="ascii",
    )
    write_snapshot(tmp_path)

    with pytest.raises(ImportProcessingError):
        importer.process(tmp_path, "run-1")

    assert institution_service.count() == 0


def test_reset_during_import_should_not_change_timestamp_of_running_import(
    importer: SksImporter, institution_service: InstitutionService, tmp_path: Path
) -> None:
    write_snapshot(tmp_path)

    def build_with_concurrent_reset(lines: Any) -> Any:
        dataset = build(lines)
        time.sleep(0.001)
        institution_service.reset_transaction_time()
        return dataset

    with patch("app.services.sks.sks_importer.build", build_with_concurrent_reset):
        result = importer.process(tmp_path, "run-1")

    for identifier in ("1301", "1301011", "1301012", "7001"):
        assert institution_service.get_one(identifier).modified_date == result.transaction_time
    assert all(
        h.modified_date == result.transaction_time
        for h in institution_service.get_history("1301011")
    )


def test_overlapping_runs_should_be_serialized(tmp_path: Path) -> None:
    active: List[int] = []
    overlaps: List[int] = []

    def persist(dataset: Any, transaction_time: Any) -> None:
        active.append(1)
        overlaps.append(len(active))
        time.sleep(0.1)
        active.pop()

    record_sink = MagicMock()
    record_sink.reset_transaction_time.side_effect = datetime.now
    record_sink.persist_delta_dataset.side_effect = persist
    importer = SksImporter(record_sink=record_sink, run_audit=MagicMock(), stats=NoopStats())
    write_snapshot(tmp_path)

    threads = [
        threading.Thread(target=importer.process, args=(tmp_path, f"run-{i}"))
        for i in range(3)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == [1, 1, 1]


def test_failing_audit_should_not_hide_persistence_failure(tmp_path: Path) -> None:
    record_sink = MagicMock()
    record_sink.reset_transaction_time.return_value = datetime.now()
    record_sink.persist_delta_dataset.side_effect = OperationalError(
        "INSERT", {}, Exception("connection lost")
    )
    run_audit = MagicMock()
    run_audit.start.return_value.fail.side_effect = OperationalError(
        "UPDATE", {}, Exception("connection lost")
    )
    memory_client = MemoryClient()
    importer = SksImporter(record_sink=record_sink, run_audit=run_audit, stats=Statsd(memory_client))
    write_snapshot(tmp_path)

    with pytest.raises(ImportProcessingError) as exc_info:
        importer.process(tmp_path, "run-1")

    assert exc_info.value.__cause__ is record_sink.persist_delta_dataset.side_effect
    assert memory_client.get_memory()["sksimporter.run.error"] == 1


def test_failing_audit_should_not_hide_malformed_record(tmp_path: Path) -> None:
    run_audit = MagicMock()
    run_audit.start.return_value.fail.side_effect = OperationalError(
        "UPDATE", {}, Exception("connection lost")
    )
    importer = SksImporter(record_sink=MagicMock(), run_audit=run_audit, stats=NoopStats())
    write_register(tmp_path, [sks_line(record_type="xyz")])

    with pytest.raises(MalformedRecordError):
        importer.process(tmp_path, "run-1")


def test_failing_audit_start_should_be_reported_as_processing_error(tmp_path: Path) -> None:
    run_audit = MagicMock()
    run_audit.start.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))
    record_sink = MagicMock()
    importer = SksImporter(record_sink=record_sink, run_audit=run_audit, stats=NoopStats())
    write_snapshot(tmp_path)

    with pytest.raises(ImportProcessingError):
        importer.process(tmp_path, "run-1")

    record_sink.persist_delta_dataset.assert_not_called()

from typing import cast

import inject

from app.config import get_config
from app.db.db import Database
from app.services.entity.import_run_service import ImportRunService
from app.services.entity.institution_service import InstitutionService
from app.services.inbox_service import InboxService
from app.services.scheduler import Scheduler
from app.services.sks.sks_importer import SksImporter
from app.stats import get_stats


def container_config(binder: inject.Binder) -> None:
    config = get_config()

    db = Database(
        dsn=config.database.dsn,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_pre_ping=config.database.pool_pre_ping,
        pool_recycle=config.database.pool_recycle,
        retry_backoff=config.database.retry_backoff,
    )
    binder.bind(Database, db)

    institution_service = InstitutionService(database=db)
    binder.bind(InstitutionService, institution_service)

    import_run_service = ImportRunService(database=db)
    binder.bind(ImportRunService, import_run_service)

    importer = SksImporter(
        record_sink=institution_service,
        run_audit=import_run_service,
        stats=get_stats(),
        file_encoding=config.importer.file_encoding,
    )
    binder.bind(SksImporter, importer)

    inbox_service = InboxService(
        importer=importer,
        inbox_path=config.importer.inbox_path,
        processed_path=(
            config.importer.processed_path
            if config.importer.archive_processed
            else None
        ),
    )
    binder.bind(InboxService, inbox_service)

    import_scheduler = Scheduler(
        function=inbox_service.poll,
        delay=config.scheduler.delay_input_in_sec,
        max_logs_entries=config.scheduler.max_logs_entries,
    )
    binder.bind("import_scheduler", import_scheduler)


def get_database() -> Database:
    return inject.instance(Database)


def get_institution_service() -> InstitutionService:
    return inject.instance(InstitutionService)


def get_import_run_service() -> ImportRunService:
    return inject.instance(ImportRunService)


def get_importer() -> SksImporter:
    return inject.instance(SksImporter)


def get_inbox_service() -> InboxService:
    return inject.instance(InboxService)


def get_import_scheduler() -> Scheduler:
    return cast(Scheduler, inject.instance("import_scheduler"))


def setup_container() -> None:
    inject.configure(container_config, once=True)

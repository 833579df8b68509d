from pathlib import Path
from typing import Any

from collections.abc import Generator
from fastapi import FastAPI
from fastapi.testclient import TestClient
import inject
import pytest

from app.application import create_fastapi_app
from app.config import Config, reset_config, set_config
from app.db.db import Database
from app.services.entity.import_run_service import ImportRunService
from app.services.entity.institution_service import InstitutionService
from app.services.sks.sks_importer import SksImporter
from app.stats import MemoryClient, Statsd
from tests.test_config import get_test_config


@pytest.fixture
def database() -> Generator[Database, Any, None]:
    db = Database("sqlite:///:memory:", retry_backoff=[])
    db.generate_tables()
    yield db


@pytest.fixture
def inbox(tmp_path: Path) -> Path:
    path = tmp_path / "inbox"
    path.mkdir()
    return path


@pytest.fixture
def config(inbox: Path) -> Generator[Config, None, None]:
    config = get_test_config(inbox_path=str(inbox))
    set_config(config)
    yield config
    reset_config()


@pytest.fixture
def memory_client() -> MemoryClient:
    return MemoryClient()


@pytest.fixture
def institution_service(database: Database) -> InstitutionService:
    return InstitutionService(database=database)


@pytest.fixture
def import_run_service(database: Database) -> ImportRunService:
    return ImportRunService(database=database)


@pytest.fixture
def importer(
    institution_service: InstitutionService,
    import_run_service: ImportRunService,
    memory_client: MemoryClient,
) -> SksImporter:
    return SksImporter(
        record_sink=institution_service,
        run_audit=import_run_service,
        stats=Statsd(memory_client),
    )


@pytest.fixture
def fastapi_app(config: Config) -> Generator[FastAPI, None, None]:
    app = create_fastapi_app()
    yield app
    inject.clear()


@pytest.fixture
def api_client(fastapi_app: FastAPI) -> TestClient:
    return TestClient(fastapi_app)

import logging
import time
from typing import Callable, List, TypeVar

from sqlalchemy import StaticPool, create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

import app.db.entities  # noqa: F401

from app.db.entities.base import Base
from app.db.session import DbSession

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BACKOFF = [0.1, 0.2, 0.4, 0.8, 1.6, 3.2, 4.8, 6.4, 10.0]

R = TypeVar("R")


class Database:
    def __init__(
        self,
        dsn: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        pool_recycle: int = 1800,
        retry_backoff: List[float] | None = None,
    ):
        self.__retry_backoff = (
            retry_backoff if retry_backoff is not None else DEFAULT_RETRY_BACKOFF
        )
        try:
            if "sqlite://" in dsn:
                self.engine = create_engine(
                    dsn,
                    connect_args={"check_same_thread": False},
                    # This + static pool is needed for sqlite in-memory tables
                    poolclass=StaticPool,
                    echo=False,
                )
            else:
                self.engine = create_engine(
                    dsn,
                    echo=False,
                    pool_size=pool_size,
                    max_overflow=max_overflow,
                    pool_pre_ping=pool_pre_ping,
                    pool_recycle=pool_recycle,
                )
        except BaseException as e:
            logger.error("Error while connecting to database: %s", e)
            raise

    def generate_tables(self) -> None:
        logger.info("Generating tables...")
        Base.metadata.create_all(self.engine)

    def is_healthy(self) -> bool:
        """Check if the database is healthy."""
        try:
            with Session(self.engine) as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.info("Database is not healthy: %s", e)
            return False

    def get_db_session(self) -> DbSession:
        return DbSession(self.engine)

    def run_with_retry(self, work: Callable[[DbSession], R]) -> R:
        """
        Runs `work` in a fresh session, and again in a new session after each
        OperationalError (lost connection, locked database) while the backoff list
        lasts. A failed attempt is rolled back before the next one starts.
        """
        for backoff in self.__retry_backoff:
            try:
                with self.get_db_session() as session:
                    return work(session)
            except OperationalError as e:
                logger.warning(f"Database operation failed, retrying in {backoff}s: {e}")
                time.sleep(backoff)

        with self.get_db_session() as session:
            return work(session)

import logging
from pathlib import Path

from sqlalchemy import StaticPool, create_engine, text
from sqlalchemy.orm import Session

import nlcore_fhir.db.entities  # noqa: F401

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.session import DbSession
from nlcore_fhir.models.auth import AccessContext

logger = logging.getLogger(__name__)

RLS_SQL_FILE = Path(__file__).parent / "sql" / "rls.sql"


class Database:
    def __init__(
        self,
        dsn: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_pre_ping: bool = False,
        pool_recycle: int = 3600,
    ):
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

    @property
    def uses_rls(self) -> bool:
        return self.engine.dialect.name == "postgresql"

    def generate_tables(self) -> None:
        logger.info("Generating tables...")
        Base.metadata.create_all(self.engine)

    def apply_row_level_security(self) -> None:
        """
        Installs the helper functions and policies from sql/rls.sql. Only
        PostgreSQL supports them, other dialects rely on the query level
        access rules alone.
        """
        if not self.uses_rls:
            logger.info(
                f"Skipping row level security, not supported by {self.engine.dialect.name}"
            )
            return

        logger.info("Applying row level security policies...")
        sql = RLS_SQL_FILE.read_text(encoding="utf-8")
        with self.engine.begin() as conn:
            conn.exec_driver_sql(sql)

    def is_healthy(self) -> bool:
        """Check if the database is healthy."""
        try:
            with Session(self.engine) as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.info("Database is not healthy: %s", e)
            return False

    def get_db_session(self, access: AccessContext | None = None) -> DbSession:
        return DbSession(self.engine, access)

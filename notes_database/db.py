import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .errors import StorageError, translate_integrity_error
from .models import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# PUBLIC_INTERFACE
class Database:
    """
    Explicit storage handle: owns the async engine and the session factory.

    Open it once at startup, call `create_tables()` to make sure the schema
    exists, and `close()` at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        parsed = make_url(url)
        engine_kwargs = {}
        if _is_memory_sqlite(parsed):
            # Every session must see the same in-memory database.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self.url = parsed
        self.engine = create_async_engine(url, echo=echo, **engine_kwargs)
        if parsed.get_backend_name() == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = async_sessionmaker(
            self.engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
        )

    async def create_tables(self) -> None:
        """Creates all tables that do not exist yet. Safe to repeat."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            logger.error("Table creation failed.", exc_info=True, extra={"component": "db"})
            raise StorageError("could not create tables") from exc
        logger.info(
            "Database tables ready.",
            extra={"component": "db", "backend": self.url.get_backend_name()},
        )

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self, resource: str) -> AsyncIterator[AsyncSession]:
        """
        One unit of work: yields a session, commits on success, rolls back on failure.

        Integrity errors are raised as ConstraintViolation tagged with `resource`
        (the table being written); other SQLAlchemy errors become StorageError.
        """
        async with self.SessionLocal() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                violation = translate_integrity_error(exc, resource)
                logger.warning(
                    "Constraint violation.",
                    extra={
                        "component": "db",
                        "resource": violation.resource,
                        "kind": violation.kind,
                        "field": violation.field,
                    },
                )
                raise violation from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(
                    "Storage failure.",
                    exc_info=True,
                    extra={"component": "db", "resource": resource},
                )
                raise StorageError(f"storage failure on {resource}: {exc}") from exc
            except OverflowError as exc:
                # Integer out of the driver's range.
                await session.rollback()
                raise StorageError(f"value out of range on {resource}: {exc}") from exc
            except Exception:
                await session.rollback()
                raise

"""Database engine, session factory, transactions and dependency injection."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterator, List, Sequence

from sqlalchemy import create_engine, event, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from fleet_rbac.core.config import settings
from fleet_rbac.core.exceptions import ConflictError, InternalError

logger = logging.getLogger("fleet_rbac.db")


def create_db_engine(url: str) -> Engine:
    """Build an engine for ``url``.

    In-memory SQLite shares one connection across threads; every SQLite
    connection gets foreign-key enforcement turned on.
    """
    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        db_engine = create_engine(url, echo=settings.DB_ECHO, **kwargs)

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine

    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
    )


engine = create_db_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run the block as one transaction: commit on success, roll back on error.

    Constraint violations surface as ConflictError and any other store error
    as InternalError, so callers never see driver-specific exceptions.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation, transaction rolled back: %s", exc.orig)
        raise ConflictError("Resource conflicts with existing data") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error, transaction rolled back")
        raise InternalError() from exc
    except Exception:
        db.rollback()
        raise


def insert_ignore(
    db: Session,
    model: Any,
    rows: List[Dict[str, Any]],
    index_elements: Sequence[str],
) -> None:
    """Insert ``rows``, silently skipping any that hit a unique constraint.

    Rows inserted concurrently by another transaction between our read and
    this insert are skipped instead of duplicated or raising.
    """
    if not rows:
        return

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model).values(rows).on_conflict_do_nothing(
            index_elements=list(index_elements)
        )
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(rows).on_conflict_do_nothing(
            index_elements=list(index_elements)
        )
    elif dialect in ("mysql", "mariadb"):
        stmt = insert(model).values(rows).prefix_with("IGNORE")
    else:
        for row in rows:
            try:
                with db.begin_nested():
                    db.execute(insert(model).values(**row))
            except IntegrityError:
                logger.debug("Skipped existing %s row %s", model.__tablename__, row)
        return

    db.execute(stmt)

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from .config import settings

logger = logging.getLogger(__name__)


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_postgres(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the folder holding DB_PATH (the default is ./data/church.sqlite)."""
    if not database_url.startswith("sqlite:///"):
        return

    path = database_url.replace("sqlite:///", "", 1)
    if path.startswith(":memory:"):
        return
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def sqlite_pragmas(engine: Engine) -> None:
    """
    WAL and a busy timeout so concurrent requests wait instead of failing.
    foreign_keys=ON: member, sale group and ministry rows reference their parents.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()


def _postgres_session_settings(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_postgres_settings(dbapi_connection, connection_record):
        try:
            cursor = dbapi_connection.cursor()
            cursor.execute("SET statement_timeout = 30000;")
            cursor.close()
        except Exception:
            # Some hosted providers disallow session settings
            logger.warning("Could not set statement_timeout on Postgres connection", exc_info=True)


def get_engine() -> Engine:
    """
    Engine for settings.resolved_database_url. SQLite connections are shared
    across request threads and get the pragmas above; Postgres connections
    get a 30s statement timeout.
    """
    url = settings.resolved_database_url

    if _is_sqlite(url):
        _ensure_sqlite_dir(url)
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False}, pool_pre_ping=True)
        sqlite_pragmas(sqlite_engine)
        return sqlite_engine

    other = create_engine(url, pool_pre_ping=True)
    if _is_postgres(url):
        _postgres_session_settings(other)
    return other


engine: Engine = get_engine()


def register_models() -> None:
    """Import every table module so create_all sees members, ministries, zones, settings and reports."""
    from .models.member import Member  # noqa: F401
    from .models.ministry import Ministry, MinistryLeader, MemberMinistry  # noqa: F401
    from .models.zone import Zone, SaleGroup  # noqa: F401
    from .models.church_setting import ChurchSetting  # noqa: F401
    from .models.report import Report  # noqa: F401


def init_db(create_tables: bool = True, bind: Engine | None = None) -> None:
    """
    Create missing tables on `bind` (the app engine by default). Existing
    tables are left as they are; there are no migrations.
    """
    register_models()
    if create_tables:
        SQLModel.metadata.create_all(bind or engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request; routes commit their own writes."""
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Session for the seed and check scripts: commits on success, rolls back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

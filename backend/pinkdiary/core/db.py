"""Database configuration and session management.

SQLite location defaults to the container path `/app/db` and can be moved
with the `DIARY_DB_DIR` environment variable. The filename is fixed to
`pinkdiary.db`.

If the directory is not accessible at runtime, the backend logs an error and stops.
"""

from typing import Generator
from pathlib import Path
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
import os
from sqlalchemy.orm import Session, sessionmaker, declarative_base

DEFAULT_DB_FILENAME = "pinkdiary.db"
DB_DIR = Path(os.getenv("DIARY_DB_DIR", "/app/db"))

logger = logging.getLogger(__name__)


def _ensure_dir(path: Path) -> tuple[bool, str]:
    try:
        if not path.exists():
            logger.warning("DB dir does not exist: %s. Attempting to create it", path)
        path.mkdir(parents=True, exist_ok=True)
        if not os.access(path, os.W_OK):
            return False, "directory not writable"
        return True, ""
    except Exception as exc:  # pragma: no cover - safety net
        return False, str(exc)


def _build_sqlite_url(db_dir: Path) -> str:
    db_file = db_dir / DEFAULT_DB_FILENAME
    logger.info("DB file path: %s", db_file)
    # `sqlite:///` + absolute path results in four slashes (sqlite:////...) which SQLAlchemy expects
    return f"sqlite:///{db_file.resolve()}"


def _resolve_sql_echo() -> bool | str:
    """Resolve SQL echo flag from environment.

    Supports the following values for `LOG_SQL_ECHO`:
    - "" (unset or empty): returns False (no SQL echo)
    - truthy ("1", "true", "yes", "on"): returns True (INFO-level statements)
    - "debug": returns "debug" (DEBUG-level with parameter values)
    Any other value defaults to False.
    """
    raw = os.getenv("LOG_SQL_ECHO", "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("debug", "2", "verbose"):
        return "debug"
    return False


_engine: Engine | None = None
SessionLocal: sessionmaker | None = None

Base = declarative_base()


def get_engine() -> Engine:
    """Create the SQLAlchemy engine lazily.

    Ensures `DB_DIR` exists and is writable. If not, logs an error and exits.
    """
    global _engine, SessionLocal
    if _engine is not None:
        return _engine

    ok, reason = _ensure_dir(DB_DIR)
    if not ok:
        logger.error("Database directory '%s' is not usable: %s", DB_DIR, reason)
        raise SystemExit(1)

    sqlite_url = _build_sqlite_url(DB_DIR)
    logger.info("SQLite URL: %s", sqlite_url)

    _engine = create_engine(
        sqlite_url,
        connect_args={"check_same_thread": False},  # Required for SQLite
        echo=_resolve_sql_echo(),
    )

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def get_session() -> Generator[Session, None, None]:
    """Get database session."""
    if SessionLocal is None:
        get_engine()
        assert SessionLocal is not None
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables.

    Only creates missing tables; never drops or alters existing ones.
    """
    # Import models so Base.metadata has the complete schema
    from pinkdiary.models import Diary, AppSetting  # noqa: F401

    logger.info("init_db: creating tables if missing")
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("init_db: ensured tables exist")


def bootstrap_db() -> None:
    """Log a short summary of what the database currently holds."""
    if SessionLocal is None:
        get_engine()
        assert SessionLocal is not None
    db = SessionLocal()
    try:
        from pinkdiary.models import Diary

        diary_count = db.query(Diary).count()
        if diary_count == 0:
            logger.info("Database is empty. Ready for the first diary entry.")
        else:
            logger.info("Database contains %s diary entries.", diary_count)
    finally:
        db.close()

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import Session, sessionmaker

from pinkdiary.main import app
from pinkdiary.core.db import Base, get_session
from pinkdiary.services.guard import backup_guard, restore_guard
from pinkdiary.services.profile import PROFILE_DEFAULTS, current_profile


@pytest.fixture
def db_session_override() -> Generator[Session, None, None]:
    """Provide a test DB session and override FastAPI dependency."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Ensure models are registered with Base before creating tables
    import pinkdiary.models  # noqa: F401
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def backup_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    base = tmp_path / "backups"
    monkeypatch.setenv("BACKUP_BASE_PATH", str(base))
    return base


@pytest.fixture
def client(
    db_session_override: Session, backup_base: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with DB override and a temporary backup directory."""

    def override_get_session() -> Generator[Session, None, None]:
        try:
            yield db_session_override
        finally:
            pass

    # Override DB dependency
    app.dependency_overrides[get_session] = override_get_session

    # Avoid touching the real DB during app startup in tests
    async def _no_profile() -> None:
        return None

    monkeypatch.setattr("pinkdiary.main.init_db", lambda: None, raising=True)
    monkeypatch.setattr("pinkdiary.main.bootstrap_db", lambda: None, raising=True)
    monkeypatch.setattr("pinkdiary.main.load_profile", _no_profile, raising=True)

    for key, value in PROFILE_DEFAULTS.items():
        setattr(current_profile, key, value)
    backup_guard.release()
    restore_guard.release()

    with TestClient(app) as test_client:
        yield test_client

    # Cleanup overrides
    app.dependency_overrides.clear()
    for key, value in PROFILE_DEFAULTS.items():
        setattr(current_profile, key, value)

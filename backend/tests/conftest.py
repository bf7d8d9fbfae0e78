"""Root conftest for tests directory."""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pinkdiary.core.db import Base
from pinkdiary.models import AppSetting, Diary, year_from_date
from pinkdiary.services.store import SqlAlchemyDiaryStore


@pytest.fixture()
def db_session() -> Session:
    """Provide a test DB session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    # Ensure models are imported
    import pinkdiary.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def store(db_session: Session) -> SqlAlchemyDiaryStore:
    return SqlAlchemyDiaryStore(db_session)


@pytest.fixture()
def make_diary(db_session: Session) -> Callable[..., Diary]:
    """Insert a diary row directly and return it."""

    def _make(
        date: str,
        content: str = "entry",
        *,
        mood: str = "😊",
        tags: Optional[list[str]] = None,
        diary_id: Optional[int] = None,
    ) -> Diary:
        diary = Diary(
            id=diary_id,
            date=date,
            year=year_from_date(date),
            content=content,
            mood=mood,
            images=[],
            tags=tags or [],
        )
        db_session.add(diary)
        db_session.commit()
        db_session.refresh(diary)
        return diary

    return _make


@pytest.fixture()
def make_setting(db_session: Session) -> Callable[[str, Any], AppSetting]:
    def _make(key: str, value: Any) -> AppSetting:
        setting = AppSetting(key=key, value=value)
        db_session.add(setting)
        db_session.commit()
        return setting

    return _make

"""Record store consumed by the backup producer and restore consumer.

The producer and consumer only ever talk to a `DiaryStore`; the SQLAlchemy
implementation below is what the application wires in, tests may swap in
anything honouring the same contract.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from pinkdiary.domain.enums import Collection, Mood
from pinkdiary.models import AppSetting, Diary, year_from_date

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

# Length of the `YYYY-MM-DD` prefix of an ISO date-time string
DATE_KEY_LENGTH = 10


class DiaryStore(ABC):
    """Async record store over the `diaries` and `settings` collections."""

    @abstractmethod
    async def get_all(self, collection: Collection) -> List[Record]:
        """Every record of `collection`."""

    @abstractmethod
    async def get_range(
        self,
        collection: Collection,
        field: str,
        lower: Any,
        upper: Any,
        include_lower: bool = True,
        include_upper: bool = True,
    ) -> List[Record]:
        """Records whose `field` lies between `lower` and `upper`.

        For the diary `date` field only the `YYYY-MM-DD` prefix is compared.
        """

    @abstractmethod
    async def bulk_upsert(self, collection: Collection, records: Iterable[Record]) -> int:
        """Insert or replace records by primary key; returns how many were written."""

    @abstractmethod
    async def bulk_delete(self, collection: Collection, ids: Iterable[Any]) -> int:
        """Delete records by primary key; returns how many were removed."""

    @abstractmethod
    async def clear(self, collection: Collection) -> int:
        """Delete every record of `collection`."""

    @abstractmethod
    async def get_setting(self, key: str, default: Any = None) -> Any:
        """Value stored under `key`, or `default` when absent."""

    @abstractmethod
    async def set_setting(self, key: str, value: Any) -> None:
        """Upsert a single setting."""


class SqlAlchemyDiaryStore(DiaryStore):
    """`DiaryStore` backed by the application's SQLAlchemy session.

    The `_`-prefixed methods are the blocking ORM work; the async methods hand
    them to a worker thread. Calls on one instance must not overlap, since the
    session is not safe for concurrent use.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _model(collection: Collection) -> type:
        if collection == Collection.DIARIES:
            return Diary
        if collection == Collection.SETTINGS:
            return AppSetting
        raise ValueError(f"unknown collection: {collection}")

    def _get_all(self, collection: Collection) -> List[Record]:
        if collection == Collection.DIARIES:
            rows = self.db.query(Diary).order_by(Diary.date.asc(), Diary.id.asc()).all()
        else:
            rows = self.db.query(AppSetting).order_by(AppSetting.key.asc()).all()
        return [row.to_record() for row in rows]

    def _get_range(
        self,
        collection: Collection,
        field: str,
        lower: Any,
        upper: Any,
        include_lower: bool = True,
        include_upper: bool = True,
    ) -> List[Record]:
        model = self._model(collection)
        if field not in model.__table__.columns:
            raise ValueError(f"unknown field for {collection.value}: {field}")

        expr = getattr(model, field)
        if model is Diary and field == "date":
            expr = func.substr(Diary.date, 1, DATE_KEY_LENGTH)

        query = self.db.query(model)
        if lower is not None:
            query = query.filter(expr >= lower if include_lower else expr > lower)
        if upper is not None:
            query = query.filter(expr <= upper if include_upper else expr < upper)
        if model is Diary:
            query = query.order_by(Diary.date.asc(), Diary.id.asc())
        return [row.to_record() for row in query.all()]

    def _upsert_diary(self, record: Record) -> None:
        diary_id: Optional[int] = record.get("id")
        diary = self.db.get(Diary, diary_id) if diary_id is not None else None
        if diary is None:
            diary = Diary(id=diary_id)
        date = record["date"]
        diary.date = date
        diary.year = year_from_date(date)
        diary.content = record.get("content") or ""
        diary.mood = record.get("mood") or Mood.NORMAL.value
        diary.images = list(record.get("images") or [])
        diary.tags = list(record.get("tags") or [])
        diary.location = record.get("location")
        self.db.add(diary)
        # Flush so a later record with the same id in this batch updates this row
        self.db.flush()

    def _upsert_setting(self, record: Record) -> None:
        key = record["key"]
        setting = self.db.get(AppSetting, key)
        if setting is None:
            setting = AppSetting(key=key)
        setting.value = record.get("value")
        self.db.add(setting)
        self.db.flush()

    def _bulk_upsert(self, collection: Collection, records: Iterable[Record]) -> int:
        upsert = self._upsert_diary if collection == Collection.DIARIES else self._upsert_setting
        count = 0
        try:
            for record in records:
                upsert(record)
                count += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.debug("store_bulk_upsert | collection=%s count=%s", collection.value, count)
        return count

    def _bulk_delete(self, collection: Collection, ids: Iterable[Any]) -> int:
        model = self._model(collection)
        pk = Diary.id if model is Diary else AppSetting.key
        id_list = list(ids)
        if not id_list:
            return 0
        try:
            deleted = (
                self.db.query(model)
                .filter(pk.in_(id_list))
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.expire_all()
        logger.debug("store_bulk_delete | collection=%s count=%s", collection.value, deleted)
        return int(deleted)

    def _clear(self, collection: Collection) -> int:
        model = self._model(collection)
        try:
            deleted = self.db.query(model).delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.expire_all()
        logger.debug("store_clear | collection=%s count=%s", collection.value, deleted)
        return int(deleted)

    def _get_setting(self, key: str, default: Any = None) -> Any:
        setting = self.db.get(AppSetting, key)
        return setting.value if setting is not None else default

    def _set_setting(self, key: str, value: Any) -> None:
        self._bulk_upsert(Collection.SETTINGS, [{"key": key, "value": value}])

    # Session work is blocking; run it off the event loop one call at a time
    async def get_all(self, collection: Collection) -> List[Record]:
        return await asyncio.to_thread(self._get_all, collection)

    async def get_range(
        self,
        collection: Collection,
        field: str,
        lower: Any,
        upper: Any,
        include_lower: bool = True,
        include_upper: bool = True,
    ) -> List[Record]:
        return await asyncio.to_thread(
            self._get_range, collection, field, lower, upper, include_lower, include_upper
        )

    async def bulk_upsert(self, collection: Collection, records: Iterable[Record]) -> int:
        return await asyncio.to_thread(self._bulk_upsert, collection, list(records))

    async def bulk_delete(self, collection: Collection, ids: Iterable[Any]) -> int:
        return await asyncio.to_thread(self._bulk_delete, collection, list(ids))

    async def clear(self, collection: Collection) -> int:
        return await asyncio.to_thread(self._clear, collection)

    async def get_setting(self, key: str, default: Any = None) -> Any:
        return await asyncio.to_thread(self._get_setting, key, default)

    async def set_setting(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set_setting, key, value)

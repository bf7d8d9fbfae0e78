from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from pinkdiary.models import Diary, year_from_date

MAX_IMAGES = 9


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Trim tags and drop blanks and duplicates, keeping first-seen order."""
    seen: set[str] = set()
    out: List[str] = []
    for tag in tags:
        value = (tag or "").strip()
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out


class DiaryService:
    """Diary entry operations used by the editor and the year list.

    Rules:
    - Save: create when no id is given, update otherwise; `year` always follows `date`.
    - Tags are de-duplicated here; the store itself does not enforce it.
    - At most nine images per entry.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, diary_id: int) -> Optional[Diary]:
        return self.db.get(Diary, diary_id)

    def save(
        self,
        *,
        date: str,
        content: str,
        mood: str,
        images: Optional[List[str]] = None,
        tags: Optional[List[str]] = None,
        location: Optional[str] = None,
        diary_id: Optional[int] = None,
    ) -> Diary:
        images = list(images or [])
        if len(images) > MAX_IMAGES:
            raise ValueError("too_many_images")

        if diary_id is not None:
            diary = self.db.get(Diary, diary_id)
            if diary is None:
                raise KeyError("diary_not_found")
        else:
            diary = Diary()

        diary.date = date
        diary.year = year_from_date(date)
        diary.content = content
        diary.mood = mood
        diary.images = images
        diary.tags = normalize_tags(tags or [])
        diary.location = location or None
        self.db.add(diary)
        self.db.commit()
        self.db.refresh(diary)
        return diary

    def delete(self, diary_id: int) -> bool:
        diary = self.db.get(Diary, diary_id)
        if diary is None:
            return False
        self.db.delete(diary)
        self.db.commit()
        return True

    def list_by_year(self, year: int) -> List[Diary]:
        q = (
            self.db.query(Diary)
            .filter(Diary.year == year)
            .order_by(Diary.date.desc(), Diary.id.desc())
        )
        return list(q.all())

    def years(self) -> List[int]:
        rows: List[Any] = self.db.query(Diary.year).distinct().all()
        years = sorted({row[0] for row in rows}, reverse=True)
        return years or [datetime.now().year]

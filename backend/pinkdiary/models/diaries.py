from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, Column, Integer, String, Text

from pinkdiary.core.db import Base


def year_from_date(date: str) -> int:
    """Year component of an ISO-8601 date or date-time string."""
    try:
        return int(date[:4])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid diary date: {date!r}") from exc


class Diary(Base):
    """A diary entry. `date` is stored as an ISO-8601 string; `year` mirrors it."""

    __tablename__ = "diaries"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(String(40), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    mood = Column(String(16), nullable=False)
    images = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    location = Column(String(255), nullable=True)

    def to_record(self) -> Dict[str, Any]:
        """Plain-dict form used by the store and backup containers."""
        record: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "year": self.year,
            "content": self.content,
            "mood": self.mood,
            "images": list(self.images or []),
            "tags": list(self.tags or []),
        }
        if self.location is not None:
            record["location"] = self.location
        return record

    def __repr__(self) -> str:
        return f"<Diary(id={self.id}, date='{self.date}', mood='{self.mood}')>"

"""Schemas for diary entries."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pinkdiary.domain.enums import Mood


class DiaryBase(BaseModel):
    """Fields the editor submits."""

    date: str = Field(..., description="ISO-8601 date or date-time of the entry")
    content: str = Field("", description="Free text body")
    mood: Mood = Field(Mood.NORMAL, description="Mood marker")
    images: List[str] = Field(default_factory=list, max_length=9, description="Embedded image payloads")
    tags: List[str] = Field(default_factory=list, description="Tags in display order")
    location: Optional[str] = Field(None, description="Free-text place label")

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: str) -> str:
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("date must be an ISO-8601 date or date-time") from exc
        return value


class DiarySave(DiaryBase):
    """Upsert payload: no id creates, an id updates."""

    id: Optional[int] = Field(None, description="Existing entry id to update")


class Diary(BaseModel):
    """Schema for diary responses."""

    id: int = Field(..., description="Unique identifier")
    date: str
    year: int = Field(..., description="Year component of date")
    content: str
    mood: str
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

"""Key/value application settings (profile name, avatar, background, ...)."""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, Column, String

from pinkdiary.core.db import Base


class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)

    def to_record(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value}

    def __repr__(self) -> str:
        return f"<AppSetting(key='{self.key}')>"

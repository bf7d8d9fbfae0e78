"""Schemas for key/value settings and the profile."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SettingValue(BaseModel):
    key: str = Field(..., description="Setting key")
    value: Any = Field(None, description="Stored value, or the default when absent")


class SettingUpdate(BaseModel):
    value: Any = Field(None, description="Value to store")


class Profile(BaseModel):
    """Profile values the presentation layer renders."""

    user_name: str
    user_avatar: str
    default_bg_value: str
    bg_is_image: bool

"""Schemas for backup and restore requests and responses."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from pinkdiary.core.container import MAX_YEAR, MIN_YEAR


class BackupRequest(BaseModel):
    scope: Literal["full", "monthly"] = Field("full", description="Backup everything or one month")
    year: Optional[int] = Field(None, ge=MIN_YEAR, le=MAX_YEAR, description="Year for monthly backups")
    month: Optional[int] = Field(None, ge=1, le=12, description="Month for monthly backups")

    @model_validator(mode="after")
    def _validate_monthly(self) -> "BackupRequest":
        if self.scope == "monthly" and (self.year is None or self.month is None):
            raise ValueError("year and month are required for monthly backups")
        return self


class BackupResponse(BaseModel):
    status: Literal["created", "empty"] = Field(..., description="'empty' when nothing matched the scope")
    message: Optional[str] = None
    name: Optional[str] = Field(None, description="Artifact file name")
    location: Optional[str] = Field(None, description="Where the artifact was written")
    scope: str
    year: Optional[int] = None
    month: Optional[int] = None
    diary_count: int = 0
    setting_count: int = 0
    size: int = 0


class BackupFromDiskResponse(BaseModel):
    """A backup artifact found in the backup directory."""

    artifact_path: str = Field(..., description="Full path to the artifact file")
    name: str
    scope: Optional[str] = Field(None, description="Scope inferred from the file name")
    year: Optional[int] = None
    month: Optional[int] = None
    file_size: int = Field(..., description="File size in bytes")
    modified_at: str = Field(..., description="File modification timestamp (ISO format)")


class RestoreSummaryResponse(BaseModel):
    scope: str
    year: Optional[int] = None
    month: Optional[int] = None
    diary_count: int
    setting_count: int
    created_at: Optional[str] = None


class RestoreResponse(BaseModel):
    status: Literal["restored", "cancelled"]
    summary: RestoreSummaryResponse
    restored_count: int = 0
    deleted_count: int = 0


class RestoreFromPathRequest(BaseModel):
    artifact_path: str = Field(..., description="Path of an artifact in the backup directory")
    confirm: bool = Field(False, description="Explicit confirmation; false only previews and cancels")

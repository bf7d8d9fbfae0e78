"""Pydantic schemas package.

Public re-exports keep import paths short.
"""

from .diaries import DiaryBase, DiarySave, Diary  # noqa: F401
from .settings import SettingValue, SettingUpdate, Profile  # noqa: F401
from .backups import (  # noqa: F401
    BackupRequest,
    BackupResponse,
    BackupFromDiskResponse,
    RestoreSummaryResponse,
    RestoreResponse,
    RestoreFromPathRequest,
)

"""Service layer.

Exposes:
- DiaryService
- BackupService
- RestoreService
- BackupsFromDiskService
- SqlAlchemyDiaryStore
"""

from .store import DiaryStore, SqlAlchemyDiaryStore
from .diaries import DiaryService
from .backups import BackupService, BackupArtifact
from .restores import RestoreService, RestoreSummary, RestoreResult, confirm_with
from .backups_from_disk import BackupsFromDiskService

__all__ = [
    "DiaryStore",
    "SqlAlchemyDiaryStore",
    "DiaryService",
    "BackupService",
    "BackupArtifact",
    "RestoreService",
    "RestoreSummary",
    "RestoreResult",
    "confirm_with",
    "BackupsFromDiskService",
]

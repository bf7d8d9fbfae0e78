"""Service for discovering backup artifacts in the backup directory."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pinkdiary.core.container import ARTIFACT_SUFFIX, MonthlyScope, scope_from_artifact_name
from pinkdiary.core.sinks import backup_base_path

logger = logging.getLogger(__name__)


class BackupFromDisk:
    """Represents a backup artifact found on disk."""

    def __init__(
        self,
        *,
        artifact_path: str,
        name: str,
        scope: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
        file_size: int,
        modified_at: str,
    ):
        self.artifact_path = artifact_path
        self.name = name
        self.scope = scope
        self.year = year
        self.month = month
        self.file_size = file_size
        self.modified_at = modified_at


class BackupsFromDiskService:
    """Scans the backup directory for `.pdbak` artifacts."""

    def scan_backups(self, *, backup_dir: Optional[str] = None) -> List[BackupFromDisk]:
        """Return every artifact in `backup_dir`, newest first.

        Args:
            backup_dir: Directory to scan (defaults to `BACKUP_BASE_PATH` or /backups)

        Returns:
            List of BackupFromDisk; scope/year/month are inferred from the file
            name and left empty for names that do not follow the convention.
        """
        base = Path(backup_dir or backup_base_path())
        if not base.is_dir():
            return []

        artifacts: List[BackupFromDisk] = []
        try:
            candidates = sorted(base.glob(f"*{ARTIFACT_SUFFIX}"))
        except PermissionError:
            logger.warning("backup_scan_denied | dir=%s", base)
            return []

        for file_path in candidates:
            if not file_path.is_file() or file_path.name.startswith("."):
                continue
            try:
                stat = file_path.stat()
            except OSError:
                continue

            scope = scope_from_artifact_name(file_path.name)
            artifacts.append(
                BackupFromDisk(
                    artifact_path=str(file_path),
                    name=file_path.name,
                    scope=scope.kind.value if scope is not None else None,
                    year=scope.year if isinstance(scope, MonthlyScope) else None,
                    month=scope.month if isinstance(scope, MonthlyScope) else None,
                    file_size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime).isoformat(),
                )
            )

        artifacts.sort(key=lambda a: a.modified_at, reverse=True)
        return artifacts

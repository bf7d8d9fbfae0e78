"""Backups API router: produce artifacts and list the ones on disk."""

import logging
from typing import List, Union

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from pinkdiary.core.container import FullScope, MonthlyScope, Scope
from pinkdiary.core.db import get_session
from pinkdiary.core.sinks import DirectorySink, DownloadSink
from pinkdiary.domain.errors import EmptySelection, SinkUnavailable
from pinkdiary.schemas import BackupFromDiskResponse, BackupRequest, BackupResponse
from pinkdiary.services import BackupService, BackupsFromDiskService, SqlAlchemyDiaryStore
from pinkdiary.services.guard import backup_guard


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/backups", tags=["backups"])


def _scope_from_request(payload: BackupRequest) -> Scope:
    if payload.scope == "monthly":
        return MonthlyScope(payload.year, payload.month)  # type: ignore[arg-type]
    return FullScope()


@router.post("/", response_model=None)
async def create_backup(
    payload: BackupRequest, db: Session = Depends(get_session)
) -> Union[BackupResponse, Response]:
    """Create a backup artifact.

    The artifact is written to the backup directory. When that fails it is
    returned directly as a file download instead.
    """
    scope = _scope_from_request(payload)
    download = DownloadSink()
    svc = BackupService(
        SqlAlchemyDiaryStore(db),
        [DirectorySink(), download],
        guard=backup_guard,
    )
    try:
        artifact = await svc.produce(scope)
    except EmptySelection as exc:
        return BackupResponse(
            status="empty",
            message=exc.message,
            scope=scope.kind.value,
            year=payload.year,
            month=payload.month,
        )
    except SinkUnavailable as exc:
        logger.error("backup_sink_unavailable | scope=%s error=%s", scope.describe(), exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.user_message)

    if artifact is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A backup is already in progress")

    if artifact.sink is download and download.pending is not None:
        name, data = download.pending
        return Response(
            content=data,
            media_type="application/octet-stream",
            headers={"Content-Disposition": f'attachment; filename="{name}"'},
        )

    return BackupResponse(
        status="created",
        name=artifact.name,
        location=artifact.location,
        scope=scope.kind.value,
        year=payload.year if isinstance(scope, MonthlyScope) else None,
        month=payload.month if isinstance(scope, MonthlyScope) else None,
        diary_count=artifact.diary_count,
        setting_count=artifact.setting_count,
        size=artifact.size,
    )


@router.get("/from-disk", response_model=List[BackupFromDiskResponse])
def list_backups_from_disk() -> List[BackupFromDiskResponse]:
    """Artifacts currently present in the backup directory, newest first."""
    backups = BackupsFromDiskService().scan_backups()
    return [
        BackupFromDiskResponse(
            artifact_path=backup.artifact_path,
            name=backup.name,
            scope=backup.scope,
            year=backup.year,
            month=backup.month,
            file_size=backup.file_size,
            modified_at=backup.modified_at,
        )
        for backup in backups
    ]

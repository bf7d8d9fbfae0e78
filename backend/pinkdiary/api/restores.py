"""Restore API router.

Restores are destructive, so every mutating call needs `confirm=true`.
`/inspect` returns the same summary without asking anything.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from pinkdiary.core.db import get_session
from pinkdiary.core.sinks import backup_base_path, read_artifact
from pinkdiary.domain.errors import CodecError, InvalidFormat, StoreMutationError
from pinkdiary.schemas import RestoreFromPathRequest, RestoreResponse, RestoreSummaryResponse
from pinkdiary.services import RestoreService, RestoreSummary, SqlAlchemyDiaryStore, confirm_with
from pinkdiary.services.guard import restore_guard
from pinkdiary.services.profile import current_profile


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/restores", tags=["restores"])


def _summary_response(summary: RestoreSummary) -> RestoreSummaryResponse:
    return RestoreSummaryResponse(
        scope=summary.kind.value,
        year=summary.year,
        month=summary.month,
        diary_count=summary.diary_count,
        setting_count=summary.setting_count,
        created_at=summary.created_at,
    )


async def _run_restore(data: bytes, confirm: bool, db: Session) -> RestoreResponse:
    svc = RestoreService(
        SqlAlchemyDiaryStore(db),
        confirm_with(confirm),
        profile=current_profile,
        guard=restore_guard,
    )
    try:
        result = await svc.restore(data)
    except (CodecError, InvalidFormat) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.user_message)
    except StoreMutationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.user_message)

    if result is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A restore is already in progress")

    return RestoreResponse(
        status=result.status.value,
        summary=_summary_response(result.summary),
        restored_count=result.restored_count,
        deleted_count=result.deleted_count,
    )


@router.post("/inspect", response_model=RestoreSummaryResponse)
async def inspect_artifact(
    file: UploadFile = File(...), db: Session = Depends(get_session)
) -> RestoreSummaryResponse:
    """Decode and validate an uploaded artifact without changing anything."""
    data = await file.read()
    svc = RestoreService(SqlAlchemyDiaryStore(db), confirm_with(False))
    try:
        summary = await svc.inspect(data)
    except (CodecError, InvalidFormat) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.user_message)
    return _summary_response(summary)


@router.post("/", response_model=RestoreResponse)
async def restore_upload(
    file: UploadFile = File(...),
    confirm: bool = Query(False, description="Must be true to apply the restore"),
    db: Session = Depends(get_session),
) -> RestoreResponse:
    data = await file.read()
    logger.info("restore_requested | source=upload filename=%s confirm=%s", file.filename, confirm)
    return await _run_restore(data, confirm, db)


@router.post("/from-path", response_model=RestoreResponse)
async def restore_from_path(
    payload: RestoreFromPathRequest, db: Session = Depends(get_session)
) -> RestoreResponse:
    """Restore an artifact that already sits in the backup directory."""
    base = Path(backup_base_path()).resolve()
    artifact = Path(payload.artifact_path).resolve()
    if base != artifact.parent and base not in artifact.parents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Artifact must be inside the backup directory")
    try:
        data = read_artifact(artifact)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artifact file not found on disk")
    logger.info("restore_requested | source=path path=%s confirm=%s", artifact, payload.confirm)
    return await _run_restore(data, payload.confirm, db)

"""Diaries API router (thin) delegating to DiaryService."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from pinkdiary.core.db import get_session
from pinkdiary.models import Diary as DiaryModel
from pinkdiary.schemas import Diary, DiarySave
from pinkdiary.services import DiaryService


router = APIRouter(prefix="/diaries", tags=["diaries"])


@router.get("/", response_model=List[Diary])
def list_diaries(year: Optional[int] = None, db: Session = Depends(get_session)) -> List[DiaryModel]:
    """Entries of one year, newest first (defaults to the current year)."""
    svc = DiaryService(db)
    return svc.list_by_year(year if year is not None else datetime.now().year)


@router.get("/years", response_model=List[int])
def list_years(db: Session = Depends(get_session)) -> List[int]:
    return DiaryService(db).years()


@router.get("/{diary_id}", response_model=Diary)
def get_diary(diary_id: int, db: Session = Depends(get_session)) -> DiaryModel:
    diary = DiaryService(db).get(diary_id)
    if diary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Diary not found")
    return diary


@router.post("/", response_model=Diary)
def save_diary(payload: DiarySave, db: Session = Depends(get_session)) -> DiaryModel:
    svc = DiaryService(db)
    try:
        return svc.save(
            diary_id=payload.id,
            date=payload.date,
            content=payload.content,
            mood=payload.mood.value,
            images=payload.images,
            tags=payload.tags,
            location=payload.location,
        )
    except KeyError as exc:
        if str(exc).strip("'") == "diary_not_found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Diary not found")
        raise
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.delete("/{diary_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_diary(diary_id: int, db: Session = Depends(get_session)) -> None:
    if not DiaryService(db).delete(diary_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Diary not found")
    return None

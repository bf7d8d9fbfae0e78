"""Settings API router: key/value settings and the profile."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pinkdiary.core.db import get_session
from pinkdiary.schemas import Profile, SettingUpdate, SettingValue
from pinkdiary.services import SqlAlchemyDiaryStore
from pinkdiary.services.profile import PROFILE_DEFAULTS, current_profile


router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/profile", response_model=Profile)
def get_profile() -> dict:
    """Profile values as currently held in memory."""
    return current_profile.as_dict()


@router.get("/{key}", response_model=SettingValue)
async def get_setting(key: str, default: Optional[str] = None, db: Session = Depends(get_session)) -> dict:
    store = SqlAlchemyDiaryStore(db)
    return {"key": key, "value": await store.get_setting(key, default)}


@router.put("/{key}", response_model=SettingValue)
async def update_setting(key: str, payload: SettingUpdate, db: Session = Depends(get_session)) -> dict:
    store = SqlAlchemyDiaryStore(db)
    await store.set_setting(key, payload.value)
    if key in PROFILE_DEFAULTS:
        setattr(current_profile, key, payload.value)
    return {"key": key, "value": payload.value}

"""In-memory profile state shown by the presentation layer.

Kept in sync with the settings collection; a full restore replaces the
settings wholesale, so it must call `reload` afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict

from pinkdiary.services.store import DiaryStore

logger = logging.getLogger(__name__)

PROFILE_DEFAULTS: Dict[str, Any] = {
    "user_name": "ユーザー様",
    "user_avatar": "🌸",
    "default_bg_value": "#ffffff",
    "bg_is_image": False,
}


@dataclass
class ProfileState:
    user_name: str = PROFILE_DEFAULTS["user_name"]
    user_avatar: str = PROFILE_DEFAULTS["user_avatar"]
    default_bg_value: str = PROFILE_DEFAULTS["default_bg_value"]
    bg_is_image: bool = PROFILE_DEFAULTS["bg_is_image"]

    async def reload(self, store: DiaryStore) -> "ProfileState":
        """Re-read every profile setting from `store`, falling back to defaults."""
        for key, default in PROFILE_DEFAULTS.items():
            setattr(self, key, await store.get_setting(key, default))
        logger.debug("profile_reloaded | user_name=%s", self.user_name)
        return self

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Process-wide profile the API serves and restores refresh
current_profile = ProfileState()

from __future__ import annotations

from enum import Enum


class Mood(str, Enum):
    EXCITED = "🥰"
    HAPPY = "😊"
    NORMAL = "😐"
    SAD = "😢"
    ANGRY = "😡"


class Collection(str, Enum):
    DIARIES = "diaries"
    SETTINGS = "settings"


class ScopeKind(str, Enum):
    FULL = "full"
    MONTHLY = "monthly"


class RestoreState(str, Enum):
    IDLE = "idle"
    DECODING = "decoding"
    VALIDATING = "validating"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CANCELLED = "cancelled"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


class RestoreStatus(str, Enum):
    RESTORED = "restored"
    CANCELLED = "cancelled"

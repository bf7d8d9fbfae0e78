"""Versioned backup container format.

The container is the JSON document inside an artifact::

    {
      "version": 1 | 2,
      "type": "monthly",           # version 2 monthly only
      "year": 2024, "month": 3,    # monthly only
      "timestamp": "2024-04-01T09:00:00+00:00",
      "diaries": [...],
      "settings": [...]            # full only
    }

Version 1 files predate monthly backups and are always full snapshots. The
version/type pair is resolved into a `Scope` exactly once, in
`parse_container`; nothing downstream looks at raw version numbers.
"""

from __future__ import annotations

import calendar
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from pinkdiary.domain.enums import ScopeKind
from pinkdiary.domain.errors import InvalidFormat

FORMAT_VERSION = 2
LEGACY_FORMAT_VERSION = 1
MONTHLY_TYPE = "monthly"

ARTIFACT_SUFFIX = ".pdbak"
ARTIFACT_PREFIX = "pinkdiary-backup"
FULL_ARTIFACT_NAME = f"{ARTIFACT_PREFIX}-full{ARTIFACT_SUFFIX}"

MIN_YEAR = 2000
MAX_YEAR = 2100

_MONTHLY_NAME_RE = re.compile(
    rf"^{re.escape(ARTIFACT_PREFIX)}-(\d{{4}})-(\d{{2}}){re.escape(ARTIFACT_SUFFIX)}$"
)


@dataclass(frozen=True)
class FullScope:
    """Entire dataset: every diary and every setting."""

    kind = ScopeKind.FULL

    def describe(self) -> str:
        return "full"


@dataclass(frozen=True)
class MonthlyScope:
    """One calendar month of diaries."""

    year: int
    month: int
    kind = ScopeKind.MONTHLY

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise ValueError("year must be an integer")
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise ValueError("month must be an integer")
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValueError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
        if not 1 <= self.month <= 12:
            raise ValueError("month must be between 1 and 12")

    def day_range(self) -> tuple[str, str]:
        """Inclusive `(first, last)` day of the month as `YYYY-MM-DD` strings."""
        last_day = calendar.monthrange(self.year, self.month)[1]
        return (
            f"{self.year:04d}-{self.month:02d}-01",
            f"{self.year:04d}-{self.month:02d}-{last_day:02d}",
        )

    def describe(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


Scope = Union[FullScope, MonthlyScope]


class DiaryRecord(BaseModel):
    """Shape a diary must have before a restore may write it."""

    model_config = ConfigDict(extra="allow", strict=True)

    id: Optional[int] = None
    date: str
    content: Optional[str] = None
    mood: Optional[str] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    location: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: str) -> str:
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("date must be an ISO-8601 date or date-time") from exc
        return value


class SettingRecord(BaseModel):
    model_config = ConfigDict(extra="allow", strict=True)

    key: str
    value: Any = None


def _validate_records(records: Any, model: type[BaseModel], label: str) -> None:
    if not isinstance(records, list):
        raise InvalidFormat(f"backup '{label}' must be a list")
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise InvalidFormat(f"{label}[{index}] must be an object")
        try:
            model.model_validate(record)
        except ValidationError as exc:
            first = exc.errors()[0]
            field_path = ".".join(str(part) for part in first["loc"])
            raise InvalidFormat(f"{label}[{index}] {field_path}: {first['msg']}") from exc


@dataclass
class BackupContainer:
    format_version: int
    scope: Scope
    created_at: Optional[str]
    diaries: List[Dict[str, Any]] = field(default_factory=list)
    settings: Optional[List[Dict[str, Any]]] = None


def build_container(
    scope: Scope,
    diaries: List[Dict[str, Any]],
    settings: Optional[List[Dict[str, Any]]] = None,
    *,
    created_at: Optional[datetime] = None,
) -> BackupContainer:
    """Assemble a current-version container for `scope`.

    Settings are only carried by full containers.
    """
    stamp = (created_at or datetime.now(timezone.utc)).isoformat()
    if isinstance(scope, MonthlyScope):
        settings = None
    else:
        settings = list(settings or [])
    return BackupContainer(
        format_version=FORMAT_VERSION,
        scope=scope,
        created_at=stamp,
        diaries=list(diaries),
        settings=settings,
    )


def dump_container(container: BackupContainer) -> str:
    """Serialize to canonical JSON text (sorted keys, compact separators)."""
    doc: Dict[str, Any] = {
        "version": container.format_version,
        "timestamp": container.created_at,
        "diaries": container.diaries,
    }
    if isinstance(container.scope, MonthlyScope):
        doc["type"] = MONTHLY_TYPE
        doc["year"] = container.scope.year
        doc["month"] = container.scope.month
    elif container.settings is not None:
        doc["settings"] = container.settings
    return json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _resolve_scope(doc: Dict[str, Any]) -> Scope:
    if doc.get("version") == FORMAT_VERSION and doc.get("type") == MONTHLY_TYPE:
        try:
            return MonthlyScope(doc.get("year"), doc.get("month"))  # type: ignore[arg-type]
        except ValueError as exc:
            raise InvalidFormat(f"monthly backup has an invalid year/month: {exc}") from exc
    # Legacy version 1 and anything without monthly markers is a full snapshot
    return FullScope()


def parse_container(text: str) -> BackupContainer:
    """Parse decompressed artifact text into a `BackupContainer`.

    Every diary and setting record is checked against `DiaryRecord` /
    `SettingRecord`, so a container that parses can be applied without the
    store rejecting a record halfway through. Records are returned as given.

    Raises:
        InvalidFormat: not JSON, not an object, `diaries`/`settings` missing
            or of the wrong shape, or any record failing validation.
    """
    try:
        doc = json.loads(text)
    except ValueError as exc:
        raise InvalidFormat(f"backup content is not JSON: {exc}") from exc

    if not isinstance(doc, dict):
        raise InvalidFormat("backup content must be a JSON object")

    diaries = doc.get("diaries")
    if diaries is None:
        raise InvalidFormat("backup is missing the 'diaries' list")
    _validate_records(diaries, DiaryRecord, "diaries")

    settings = doc.get("settings")
    if settings is not None:
        _validate_records(settings, SettingRecord, "settings")

    scope = _resolve_scope(doc)
    version = doc.get("version")
    timestamp = doc.get("timestamp")
    return BackupContainer(
        format_version=version if isinstance(version, int) else LEGACY_FORMAT_VERSION,
        scope=scope,
        created_at=timestamp if isinstance(timestamp, str) else None,
        diaries=diaries,
        settings=None if isinstance(scope, MonthlyScope) else settings,
    )


def artifact_name(scope: Scope) -> str:
    """File name for an artifact of `scope`."""
    if isinstance(scope, MonthlyScope):
        return f"{ARTIFACT_PREFIX}-{scope.year:04d}-{scope.month:02d}{ARTIFACT_SUFFIX}"
    return FULL_ARTIFACT_NAME


def scope_from_artifact_name(name: str) -> Optional[Scope]:
    """Best-effort inverse of `artifact_name`; `None` for foreign names."""
    if name == FULL_ARTIFACT_NAME:
        return FullScope()
    match = _MONTHLY_NAME_RE.match(name)
    if match is None:
        return None
    try:
        return MonthlyScope(int(match.group(1)), int(match.group(2)))
    except ValueError:
        return None

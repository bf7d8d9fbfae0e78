"""Restore consumer: validate an artifact and reconcile it against the store.

Per invocation the service walks::

    Idle -> Decoding -> Validating -> AwaitingConfirmation
         -> Cancelled | Applying -> Done | Failed

Nothing is written before confirmation. Decoding and validation failures
leave the store untouched; a failure while applying is reported as
`StoreMutationError` and whatever was already written stays written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from pinkdiary.core.codec import decompress
from pinkdiary.core.container import BackupContainer, MonthlyScope, Scope, parse_container
from pinkdiary.domain.enums import Collection, RestoreState, RestoreStatus, ScopeKind
from pinkdiary.domain.errors import StoreMutationError
from pinkdiary.services.guard import OperationGuard
from pinkdiary.services.profile import ProfileState
from pinkdiary.services.store import DiaryStore

logger = logging.getLogger(__name__)


@dataclass
class RestoreSummary:
    """What the user is asked to confirm."""

    scope: Scope
    diary_count: int
    setting_count: int
    created_at: Optional[str] = None

    @property
    def kind(self) -> ScopeKind:
        return self.scope.kind

    @property
    def year(self) -> Optional[int]:
        return self.scope.year if isinstance(self.scope, MonthlyScope) else None

    @property
    def month(self) -> Optional[int]:
        return self.scope.month if isinstance(self.scope, MonthlyScope) else None

    @classmethod
    def from_container(cls, container: BackupContainer) -> "RestoreSummary":
        return cls(
            scope=container.scope,
            diary_count=len(container.diaries),
            setting_count=len(container.settings or []),
            created_at=container.created_at,
        )


@dataclass
class RestoreResult:
    status: RestoreStatus
    summary: RestoreSummary
    restored_count: int = 0
    deleted_count: int = 0


ConfirmCallback = Callable[[RestoreSummary], Awaitable[bool]]


def confirm_with(answer: bool) -> ConfirmCallback:
    """Confirmation callback that always answers `answer` (pre-approved requests)."""

    async def _confirm(summary: RestoreSummary) -> bool:
        return answer

    return _confirm


class RestoreService:
    """Restores full or monthly artifacts into a `DiaryStore`."""

    def __init__(
        self,
        store: DiaryStore,
        confirm: ConfirmCallback,
        *,
        profile: Optional[ProfileState] = None,
        guard: Optional[OperationGuard] = None,
    ) -> None:
        self.store = store
        self.confirm = confirm
        self.profile = profile if profile is not None else ProfileState()
        self.guard = guard or OperationGuard("restore")
        self._state = RestoreState.IDLE

    @property
    def state(self) -> RestoreState:
        return self._state

    def _load(self, artifact: bytes | str, *, track_state: bool = True) -> BackupContainer:
        """Decode and validate `artifact`; nothing here touches the store."""
        try:
            if track_state:
                self._state = RestoreState.DECODING
            text = decompress(artifact)
            if track_state:
                self._state = RestoreState.VALIDATING
            return parse_container(text)
        except Exception as exc:
            if track_state:
                self._state = RestoreState.FAILED
            logger.warning("restore_rejected | error=%s", exc)
            raise

    async def inspect(self, artifact: bytes | str) -> RestoreSummary:
        """Decode and validate `artifact` without asking or touching the store."""
        return RestoreSummary.from_container(self._load(artifact, track_state=False))

    async def restore(self, artifact: bytes | str) -> Optional[RestoreResult]:
        """Run a full restore cycle for `artifact`.

        Returns `None` without doing anything when another restore is in flight.

        Raises:
            CodecError: artifact could not be decompressed.
            InvalidFormat: artifact is not a backup container.
            StoreMutationError: the store rejected a delete or upsert.
        """
        if not self.guard.try_acquire():
            logger.info("restore_skipped_busy")
            return None
        try:
            return await self._restore(artifact)
        finally:
            self.guard.release()

    async def _restore(self, artifact: bytes | str) -> RestoreResult:
        container = self._load(artifact)
        summary = RestoreSummary.from_container(container)
        self._state = RestoreState.AWAITING_CONFIRMATION
        if not await self.confirm(summary):
            self._state = RestoreState.CANCELLED
            logger.info("restore_cancelled | scope=%s", summary.scope.describe())
            return RestoreResult(status=RestoreStatus.CANCELLED, summary=summary)

        self._state = RestoreState.APPLYING
        try:
            if isinstance(container.scope, MonthlyScope):
                deleted, restored = await self._apply_monthly(container.scope, container.diaries)
            else:
                deleted, restored = await self._apply_full(container)
        except Exception as exc:
            self._state = RestoreState.FAILED
            logger.error(
                "restore_failed | scope=%s error=%s", summary.scope.describe(), exc, exc_info=True
            )
            raise StoreMutationError(f"restore of {summary.scope.describe()} failed: {exc}") from exc

        self._state = RestoreState.DONE
        logger.info(
            "restore_completed | scope=%s deleted=%s restored=%s",
            summary.scope.describe(),
            deleted,
            restored,
        )
        return RestoreResult(
            status=RestoreStatus.RESTORED,
            summary=summary,
            restored_count=restored,
            deleted_count=deleted,
        )

    async def _apply_monthly(self, scope: MonthlyScope, diaries: List[dict]) -> tuple[int, int]:
        # Range comes from the container header, never from the payload
        first_day, last_day = scope.day_range()
        existing = await self.store.get_range(
            Collection.DIARIES, "date", first_day, last_day, True, True
        )
        ids = [record["id"] for record in existing if record.get("id") is not None]
        deleted = await self.store.bulk_delete(Collection.DIARIES, ids)
        restored = await self.store.bulk_upsert(Collection.DIARIES, diaries)
        return deleted, restored

    async def _apply_full(self, container: BackupContainer) -> tuple[int, int]:
        deleted = await self.store.clear(Collection.DIARIES)
        await self.store.clear(Collection.SETTINGS)
        restored = await self.store.bulk_upsert(Collection.DIARIES, container.diaries)
        if container.settings:
            await self.store.bulk_upsert(Collection.SETTINGS, container.settings)
        await self.profile.reload(self.store)
        return deleted, restored

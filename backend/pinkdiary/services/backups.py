"""Backup producer: select records, build a container, compress, emit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from pinkdiary.core.codec import compress
from pinkdiary.core.container import (
    FullScope,
    MonthlyScope,
    Scope,
    artifact_name,
    build_container,
    dump_container,
)
from pinkdiary.core.sinks import ArtifactSink, write_artifact
from pinkdiary.domain.enums import Collection
from pinkdiary.domain.errors import EmptySelection
from pinkdiary.services.guard import OperationGuard
from pinkdiary.services.store import DiaryStore

logger = logging.getLogger(__name__)


@dataclass
class BackupArtifact:
    """Outcome of a successful backup."""

    name: str
    location: str
    scope: Scope
    diary_count: int
    setting_count: int
    size: int
    sink: ArtifactSink


class BackupService:
    """Produces full or monthly backup artifacts from a `DiaryStore`.

    The store is only read. Sinks are tried in order, so pass the preferred
    one first and a `DownloadSink` last as the fallback.
    """

    def __init__(
        self,
        store: DiaryStore,
        sinks: Sequence[ArtifactSink],
        *,
        guard: Optional[OperationGuard] = None,
    ) -> None:
        self.store = store
        self.sinks = list(sinks)
        self.guard = guard or OperationGuard("backup")

    async def produce(self, scope: Scope) -> Optional[BackupArtifact]:
        """Create and emit the artifact for `scope`.

        Returns `None` without doing anything when another backup is in flight.

        Raises:
            EmptySelection: a monthly scope matched no diaries; nothing is written.
            SinkUnavailable: no sink accepted the artifact.
        """
        if not self.guard.try_acquire():
            logger.info("backup_skipped_busy | scope=%s", scope.describe())
            return None
        try:
            return await self._produce(scope)
        finally:
            self.guard.release()

    async def _produce(self, scope: Scope) -> BackupArtifact:
        if isinstance(scope, MonthlyScope):
            first_day, last_day = scope.day_range()
            diaries = await self.store.get_range(
                Collection.DIARIES, "date", first_day, last_day, True, True
            )
            if not diaries:
                logger.info("backup_empty_selection | scope=%s", scope.describe())
                raise EmptySelection(f"Nothing to back up for {scope.describe()}")
            settings = None
        else:
            diaries = await self.store.get_all(Collection.DIARIES)
            settings = await self.store.get_all(Collection.SETTINGS)

        container = build_container(scope, diaries, settings)
        payload = compress(dump_container(container)).encode("ascii")
        name = artifact_name(scope)
        location, sink = await write_artifact(self.sinks, name, payload)

        artifact = BackupArtifact(
            name=name,
            location=location,
            scope=scope,
            diary_count=len(diaries),
            setting_count=len(container.settings or []),
            size=len(payload),
            sink=sink,
        )
        logger.info(
            "backup_created | scope=%s name=%s diaries=%s settings=%s bytes=%s sink=%s",
            scope.describe(),
            name,
            artifact.diary_count,
            artifact.setting_count,
            artifact.size,
            sink.name,
        )
        return artifact

    async def produce_full(self) -> Optional[BackupArtifact]:
        return await self.produce(FullScope())

    async def produce_monthly(self, year: int, month: int) -> Optional[BackupArtifact]:
        return await self.produce(MonthlyScope(year, month))

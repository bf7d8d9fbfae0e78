"""Artifact sinks (where backups are written) and the artifact source."""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Tuple

from pinkdiary.domain.errors import SinkUnavailable

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_BASE_PATH = "/backups"


def backup_base_path() -> str:
    return os.environ.get("BACKUP_BASE_PATH", DEFAULT_BACKUP_BASE_PATH)


class ArtifactSink(ABC):
    """Destination for a finished artifact."""

    name: str = "sink"

    @abstractmethod
    async def write(self, name: str, data: bytes) -> str:
        """Store `data` under `name` and return where it ended up."""


class DirectorySink(ArtifactSink):
    """Primary sink: a file in the backup directory, replaced atomically."""

    name = "directory"

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory or backup_base_path())

    def _write_sync(self, name: str, data: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        final_path = self.directory / name
        tmp_path = final_path.with_name(f".{name}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, final_path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        return str(final_path)

    async def write(self, name: str, data: bytes) -> str:
        return await asyncio.to_thread(self._write_sync, name, data)


class DownloadSink(ArtifactSink):
    """Fallback sink: keeps the artifact in memory to be offered as a download."""

    name = "download"

    def __init__(self) -> None:
        self.pending: Optional[Tuple[str, bytes]] = None

    async def write(self, name: str, data: bytes) -> str:
        self.pending = (name, data)
        return f"download://{name}"


async def write_artifact(
    sinks: Sequence[ArtifactSink], name: str, data: bytes
) -> Tuple[str, ArtifactSink]:
    """Try each sink in order until one accepts the artifact.

    Returns:
        `(location, sink)` of the first sink that succeeded.

    Raises:
        SinkUnavailable: every sink failed (or none were given).
    """
    last_error: Optional[BaseException] = None
    for sink in sinks:
        try:
            location = await sink.write(name, data)
        except Exception as exc:  # noqa: BLE001
            last_error = exc
            logger.warning(
                "artifact_sink_failed | sink=%s artifact=%s error=%s", sink.name, name, exc
            )
            continue
        logger.info(
            "artifact_written | sink=%s artifact=%s location=%s bytes=%s",
            sink.name,
            name,
            location,
            len(data),
        )
        return location, sink
    raise SinkUnavailable(f"no sink accepted artifact {name}") from last_error


def read_artifact(path: str | Path) -> bytes:
    """Read an artifact picked by the user."""
    artifact = Path(path)
    if not artifact.is_file():
        raise FileNotFoundError(f"Artifact not found: {artifact}")
    return artifact.read_bytes()

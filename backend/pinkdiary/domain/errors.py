"""Error taxonomy for the backup and restore pipeline.

Codec and format errors are raised before any store mutation. Mutation-phase
failures are wrapped in `StoreMutationError` and are not rolled back.
"""

from __future__ import annotations


class BackupError(Exception):
    """Base class for backup/restore failures that are shown to the user."""

    user_message = "Backup operation failed"


class CodecError(BackupError):
    """Compressed payload could not be decoded (bad base64, corrupt or truncated gzip)."""

    user_message = "Backup file is corrupted or in the wrong format"


class InvalidFormat(BackupError):
    """Payload decompressed fine but is not a backup container."""

    user_message = "Invalid backup file"


class SinkUnavailable(BackupError):
    """No artifact sink accepted the backup."""

    user_message = "Could not save the backup file"


class StoreMutationError(BackupError):
    """Delete/upsert failed while applying a restore; store may be partially updated."""

    user_message = "Restore failed; local data may be incomplete"


class EmptySelection(Exception):
    """Nothing matched the requested backup scope. Informational, not a failure."""

    def __init__(self, message: str = "Nothing to back up") -> None:
        super().__init__(message)
        self.message = message

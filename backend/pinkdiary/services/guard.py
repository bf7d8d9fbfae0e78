from __future__ import annotations


class OperationGuard:
    """Non-blocking busy flag: at most one holder, later callers are turned away.

    Holders must share one event loop; `try_acquire` never awaits between
    the check and the set.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        if self._busy:
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False


# Shared across per-request service instances in the API
backup_guard = OperationGuard("backup")
restore_guard = OperationGuard("restore")

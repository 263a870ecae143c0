from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from .db import utc_now


@dataclass
class LastPass:
    total: int
    failed: int
    rolled_back: int
    finished_at: str


class RuntimeState:
    """In-memory view of recent passes, served by the status API.

    Reporting only: the reconciler never reads it back.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self.passes = 0
        self.rollbacks_issued = 0
        self.last_pass: LastPass | None = None
        self.last_error: str | None = None
        self.last_error_at: str | None = None

    def record_pass(self, total: int, failed: int, rolled_back: int) -> LastPass | None:
        """Store the latest pass and return the one it replaced."""
        with self.lock:
            prev = self.last_pass
            self.passes += 1
            self.last_pass = LastPass(total=total, failed=failed, rolled_back=rolled_back, finished_at=utc_now())
            return prev

    def record_rollback(self) -> None:
        with self.lock:
            self.rollbacks_issued += 1

    def record_error(self, message: str) -> None:
        with self.lock:
            self.last_error = message
            self.last_error_at = utc_now()

    def snapshot(self) -> dict:
        with self.lock:
            return {
                "passes": self.passes,
                "rollbacks_issued": self.rollbacks_issued,
                "last_pass": None if self.last_pass is None else dict(vars(self.last_pass)),
                "last_error": self.last_error,
                "last_error_at": self.last_error_at,
            }

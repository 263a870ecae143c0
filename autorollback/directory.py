from __future__ import annotations

import copy
import time
from threading import Event, Lock
from typing import Iterable, Protocol

from .models import WorkloadRecord


class DirectoryError(Exception):
    """A list or update call against the workload directory failed.

    ``reason`` is one of: conflict, not_found, transport, cancelled.
    """

    def __init__(self, message: str, reason: str = "transport"):
        super().__init__(message)
        self.reason = reason


class CallContext:
    """Cancellation/deadline token handed to every directory call.

    The reconciler creates an unbounded one per pass and never cancels it;
    the token exists so callers can bound a pass without changing the
    directory contract.
    """

    def __init__(self, timeout_s: float | None = None):
        self._cancelled = Event()
        self._deadline = None if timeout_s is None else time.monotonic() + float(timeout_s)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def request_timeout(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        if self.cancelled:
            raise DirectoryError("call context cancelled or past its deadline", reason="cancelled")


class Directory(Protocol):
    def list(self, namespace: str, ctx: CallContext) -> list[WorkloadRecord]:
        ...

    def update(self, record: WorkloadRecord, ctx: CallContext) -> WorkloadRecord:
        ...


class InMemoryDirectory:
    """Directory backed by a dict, seeded with literal records.

    ``list`` hands out deep copies so callers work on a snapshot, like a real
    API client would. ``update`` replaces the stored record whole.
    """

    def __init__(self, records: Iterable[WorkloadRecord] = ()):
        self._lock = Lock()
        self._records: dict[tuple[str, str], WorkloadRecord] = {}
        self.updates: list[WorkloadRecord] = []
        for r in records:
            self._records[r.key] = copy.deepcopy(r)

    def list(self, namespace: str, ctx: CallContext) -> list[WorkloadRecord]:
        ctx.check()
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values() if r.namespace == namespace]

    def update(self, record: WorkloadRecord, ctx: CallContext) -> WorkloadRecord:
        ctx.check()
        with self._lock:
            if record.key not in self._records:
                raise DirectoryError(f"deployment {record.namespace}/{record.name} not found", reason="not_found")
            stored = copy.deepcopy(record)
            self._records[record.key] = stored
            self.updates.append(copy.deepcopy(record))
            return copy.deepcopy(stored)

    def get(self, namespace: str, name: str) -> WorkloadRecord | None:
        with self._lock:
            r = self._records.get((namespace, name))
            return copy.deepcopy(r) if r else None

    def put(self, record: WorkloadRecord) -> None:
        """Write a record as another actor would (no update bookkeeping)."""
        with self._lock:
            self._records[record.key] = copy.deepcopy(record)

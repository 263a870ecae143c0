from __future__ import annotations

from dataclasses import dataclass

from .directory import CallContext, Directory, DirectoryError
from .dispatcher import DispatchError, dispatch
from .events import EventSink
from .models import WorkloadRecord
from .planner import plan


class ReconcileError(Exception):
    stage = "pass"

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ListError(ReconcileError):
    stage = "list"


class UpdateError(ReconcileError):
    stage = "update"

    def __init__(self, message: str, record: WorkloadRecord, cause: Exception | None = None):
        super().__init__(message, cause)
        self.record = record


@dataclass(frozen=True)
class PassSummary:
    total: int
    failed: int
    rolled_back: int


class Reconciler:
    """Scans the namespace once and rolls back failed deployments.

    Does not loop; the scheduler calls ``run_once`` on every tick. Nothing is
    remembered between passes.
    """

    def __init__(self, directory: Directory, namespace: str, sink: EventSink):
        self.directory = directory
        self.namespace = namespace
        self.sink = sink

    def run_once(self, ctx: CallContext | None = None) -> PassSummary:
        ctx = ctx or CallContext()
        try:
            records = self.directory.list(self.namespace, ctx)
        except DirectoryError as e:
            raise ListError(f"list deployments: {e}", cause=e) from e

        p = plan(records)
        summary = PassSummary(total=p.total, failed=p.failed_count, rolled_back=p.rolled_back)
        self.sink.pass_completed(summary)

        for r in p.needs_rollback:
            try:
                dispatch(self.directory, r, ctx)
            except DispatchError as e:
                raise UpdateError(str(e), record=r, cause=e.cause) from e
            self.sink.rolled_back(r)
        return summary

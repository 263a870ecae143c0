from __future__ import annotations

from .directory import CallContext, Directory, DirectoryError
from .models import LAST_STABLE_REVISION, RollbackRequest, WorkloadRecord


class DispatchError(Exception):
    def __init__(self, record: WorkloadRecord, cause: DirectoryError):
        super().__init__(f"update deployment {record.namespace}/{record.name}: {cause}")
        self.record = record
        self.cause = cause


def dispatch(directory: Directory, record: WorkloadRecord, ctx: CallContext) -> WorkloadRecord:
    """Ask the orchestrator to roll ``record`` back to its last stable revision.

    The request is written from the locally held snapshot with a plain
    replace, so a request set by someone else after the list call is
    overwritten (last write wins).
    """
    record.rollback_request = RollbackRequest(target_revision=LAST_STABLE_REVISION)
    try:
        return directory.update(record, ctx)
    except DirectoryError as e:
        raise DispatchError(record, e) from e

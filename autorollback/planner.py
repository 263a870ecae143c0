from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .classifier import is_failed
from .models import WorkloadRecord


@dataclass
class RollbackPlan:
    total: int = 0
    failed_count: int = 0
    needs_rollback: list[WorkloadRecord] = field(default_factory=list)

    @property
    def rolled_back(self) -> int:
        # Failed deployments that already carry a rollback request.
        return self.failed_count - len(self.needs_rollback)


def plan(records: Iterable[WorkloadRecord]) -> RollbackPlan:
    """Split records into failed-and-unhandled vs. everything else.

    Failed records with a rollback request already in flight are counted but
    never scheduled again, whoever set the request. Input order is kept.
    """
    p = RollbackPlan()
    for r in records:
        p.total += 1
        if not is_failed(r):
            continue
        p.failed_count += 1
        if r.rollback_request is None:
            p.needs_rollback.append(r)
    return p

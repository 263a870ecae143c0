from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Revision 0 tells the orchestrator to pick the last stable revision itself.
LAST_STABLE_REVISION = 0


@dataclass(frozen=True)
class Condition:
    # None means the field was not set, which is not the same as "".
    type: str | None = None
    status: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class RollbackRequest:
    target_revision: int


@dataclass
class WorkloadRecord:
    """One Deployment as seen by the controller.

    ``conditions`` are owned by the orchestrator and only read here.
    ``rollback_request`` is the only field this controller writes.
    ``raw`` keeps the backing API object so updates can replace it whole.
    """

    name: str
    namespace: str
    conditions: list[Condition] = field(default_factory=list)
    rollback_request: RollbackRequest | None = None
    raw: Any = None

    @property
    def key(self) -> tuple[str, str]:
        return self.namespace, self.name

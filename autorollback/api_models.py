from __future__ import annotations

from pydantic import BaseModel, Field


class PassModel(BaseModel):
    total: int = Field(..., ge=0, description="Deployments seen in the namespace")
    failed: int = Field(..., ge=0, description="Deployments past their progress deadline")
    rolled_back: int = Field(..., ge=0, description="Failed deployments already carrying a rollback request")
    finished_at: str


class StatusResponse(BaseModel):
    namespace: str | None = None
    passes: int = 0
    rollbacks_issued: int = 0
    last_pass: PassModel | None = None
    last_error: str | None = None
    last_error_at: str | None = None


class EventModel(BaseModel):
    id: int
    ts: str
    level: str
    namespace: str | None = None
    deployment: str | None = None
    message: str

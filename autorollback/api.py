from __future__ import annotations

from fastapi import FastAPI, Query

from . import db
from .api_models import EventModel, StatusResponse
from .runtime import RuntimeState
from .scheduler import Scheduler


def create_app(runtime: RuntimeState, scheduler: Scheduler | None = None, namespace: str | None = None) -> FastAPI:
    """Status API for a running controller.

    When a scheduler is given it is started on app startup, in a daemon thread.
    """
    app = FastAPI(title="Deployment auto-rollback")

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()
        if scheduler is not None:
            scheduler.start()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        return StatusResponse(namespace=namespace, **runtime.snapshot())

    @app.get("/events", response_model=list[EventModel])
    def events(limit: int = Query(50, ge=1, le=1000)) -> list[EventModel]:
        return [EventModel(**e) for e in db.latest_events(limit)]

    return app

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Controller
    # Unset: use the namespace of the client context.
    namespace: str | None = os.getenv("AR_NAMESPACE")
    client_mode: str = os.getenv("AR_CLIENT", "in-cluster")  # in-cluster|kubectl
    poll_interval_s: float = _env_float("AR_POLL_INTERVAL_S", 2.0)

    # Observability
    db_path: str = os.getenv("AR_DB_PATH", "autorollback.db")
    log_level: str = os.getenv("AR_LOG_LEVEL", "INFO")
    api_host: str = os.getenv("AR_API_HOST", "0.0.0.0")
    api_port: int = _env_int("AR_API_PORT", 8000)


settings = Settings()

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Kubernetes access
    kubeconfig: str | None = os.getenv("TR_KUBECONFIG")
    kube_context: str | None = os.getenv("TR_KUBE_CONTEXT")
    api_timeout_s: int = _env_int("TR_API_TIMEOUT_S", 10)

    # Send metadata.resourceVersion with every patch so stale writes are rejected.
    optimistic_lock: bool = _env_bool("TR_OPTIMISTIC_LOCK", True)

    # Event journal
    enable_journal: bool = _env_bool("TR_ENABLE_JOURNAL", True)
    db_path: str = os.getenv("TR_DB_PATH", "trafficrouter.db")

    log_level: str = os.getenv("TR_LOG_LEVEL", "INFO")

    # CLI
    api_url: str = os.getenv("TR_API_URL", "http://localhost:8000")


settings = Settings()

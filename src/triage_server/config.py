"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field
from typing import Literal

from triage_db.config import DatabaseSettings, load_database_settings

AnswerStoreKind = Literal["postgres", "memory"]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Template directory (None → TemplateStore default, templates/ from repo root)
    template_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # Canonical answer backend: PostgreSQL, or process memory for demos/tests
    answer_store: AnswerStoreKind = "postgres"

    # Pool settings, used only by the postgres backend
    database: DatabaseSettings = field(default_factory=DatabaseSettings)

    # Debounced background saves after every edit
    autosave: bool = True


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    answer_store = os.getenv("ANSWER_STORE", "postgres").strip().lower()
    if answer_store not in ("postgres", "memory"):
        raise ValueError(f"Unsupported ANSWER_STORE: {answer_store!r}")

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        template_dir=os.getenv("SERVER_TEMPLATE_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        answer_store=answer_store,
        database=load_database_settings(),
        autosave=_env_flag("SERVER_AUTOSAVE", "on"),
    )

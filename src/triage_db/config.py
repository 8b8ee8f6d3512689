"""Connection settings for the canonical answer database.

``DatabaseSettings`` carries everything needed to open the answer store's
connection pool.  The server builds it once at startup through
``load_database_settings()``:

  - ``DATABASE_URL`` wins when set (``postgres://`` and ``postgresql://``
    URLs are switched to the asyncpg driver)
  - otherwise ``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD`` and
    ``PG_DATABASE`` are assembled into a URL
  - ``PG_POOL_SIZE``, ``PG_MAX_OVERFLOW`` and ``PG_ECHO`` tune the pool
"""

import os
from dataclasses import dataclass

ASYNC_DRIVER = "postgresql+asyncpg"

# Plain schemes accepted in DATABASE_URL, rewritten to the async driver
_PLAIN_SCHEMES = ("postgresql", "postgres")


@dataclass(frozen=True)
class DatabaseSettings:
    """Answer-store database settings; the URL always names the asyncpg driver."""

    url: str = f"{ASYNC_DRIVER}://triage:triage@localhost:5432/triage"
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


def to_async_url(url: str) -> str:
    """Point a plain PostgreSQL URL at the asyncpg driver; others pass through."""
    scheme, sep, rest = url.partition("://")
    if sep and scheme in _PLAIN_SCHEMES:
        return f"{ASYNC_DRIVER}://{rest}"
    return url


def database_url_from_env() -> str:
    """Async connection URL from ``DATABASE_URL`` or the ``PG_*`` parts."""
    url = os.getenv("DATABASE_URL")
    if url:
        return to_async_url(url)
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "triage")
    password = os.getenv("PG_PASSWORD", "triage")
    database = os.getenv("PG_DATABASE", "triage")
    return f"{ASYNC_DRIVER}://{user}:{password}@{host}:{port}/{database}"


def load_database_settings() -> DatabaseSettings:
    return DatabaseSettings(
        url=database_url_from_env(),
        pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("PG_MAX_OVERFLOW", "10")),
        echo=os.getenv("PG_ECHO", "off").strip().lower() in ("1", "true", "yes", "on"),
    )

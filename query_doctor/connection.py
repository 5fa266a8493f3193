"""Database connection management."""

from __future__ import annotations

import psycopg2
import psycopg2.extensions

APPLICATION_NAME = "query-doctor"
CONNECT_TIMEOUT_S = 5


def connect(dsn: str | None = None, **params) -> psycopg2.extensions.connection:
    """Open a diagnostics connection from a DSN and/or libpq keywords.

    Keyword params override the matching DSN components; anything left
    unset falls back to the standard PG* environment variables. The session
    is read-only and autocommit, so plan lookups never hold a transaction
    open on the observed database.
    """
    params = {k: v for k, v in params.items() if v is not None}
    params.setdefault("application_name", APPLICATION_NAME)
    params.setdefault("connect_timeout", CONNECT_TIMEOUT_S)

    conn = psycopg2.connect(psycopg2.extensions.make_dsn(dsn or "", **params))
    conn.set_session(readonly=True, autocommit=True)
    return conn

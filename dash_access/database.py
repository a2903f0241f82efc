"""
Database engine initialisation and schema setup.
"""

import sys

from sqlalchemy import create_engine, text

from dash_access.config import get_env, PROFILE_LOOKUP_TIMEOUT_SECONDS

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        user_id     VARCHAR(128) PRIMARY KEY,
        email       VARCHAR(255),
        first_name  VARCHAR(100),
        last_name   VARCHAR(100),
        role        VARCHAR(32),
        created_at  VARCHAR(32)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS client_records (
        id       INTEGER PRIMARY KEY,
        email    VARCHAR(255),
        payload  TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS therapy_notes (
        id          VARCHAR(64) PRIMARY KEY,
        client_id   INTEGER NOT NULL,
        payload     TEXT NOT NULL,
        created_at  VARCHAR(32)
    )
    """,
]


def init_engine():
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = get_env("DB_URI")
    if db_uri.startswith("sqlite"):
        connect_args = {"timeout": PROFILE_LOOKUP_TIMEOUT_SECONDS}
    else:
        connect_args = {"connect_timeout": PROFILE_LOOKUP_TIMEOUT_SECONDS}
    engine = create_engine(db_uri, echo=False, future=True, connect_args=connect_args)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def init_schema(engine) -> None:
    """Create the profile and record tables if they are missing."""
    with engine.begin() as conn:
        for stmt in SCHEMA_STATEMENTS:
            conn.execute(text(stmt))

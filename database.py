"""
SQLite storage for users, their ranking aggregate, and quiz results.

One connection per app context (WAL, foreign keys on). Schema changes after
the base DDL are numbered migrations tracked in schema_version.
"""

from __future__ import annotations

import fcntl
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from flask import current_app, g

from errors import StoreUnavailable

logger = logging.getLogger(__name__)


SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Users, with the ranking aggregate embedded (1:1)
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT,
    role TEXT NOT NULL DEFAULT 'user',
    created_at TEXT NOT NULL DEFAULT '',
    quizzes_attended INTEGER NOT NULL DEFAULT 0,
    total_score INTEGER NOT NULL DEFAULT 0,
    average_score INTEGER NOT NULL DEFAULT 0,
    rank INTEGER,
    stats_updated_at TEXT NOT NULL DEFAULT ''
);

-- Quiz submissions (append-only)
CREATE TABLE IF NOT EXISTS results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    quiz_id TEXT NOT NULL,
    score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 100),
    total_questions INTEGER,
    correct_answers INTEGER,
    time_taken INTEGER,
    submitted_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_results_user_quiz ON results(user_id, quiz_id);

-- Audit log
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    action TEXT NOT NULL,
    detail TEXT NOT NULL DEFAULT '',
    ip_address TEXT NOT NULL DEFAULT '',
    user_agent TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
"""


MIGRATIONS: list[tuple[int, str]] = [
    (1, """
        CREATE INDEX IF NOT EXISTS idx_users_rank ON users(rank);
    """),
    (2, """
        CREATE INDEX IF NOT EXISTS idx_results_user_submitted ON results(user_id, submitted_at);
    """),
]


def _database_path() -> str:
    return current_app.config.get("DATABASE", str(Path(__file__).parent / "quizrank.db"))


def connect(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, timeout=15)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def get_db() -> sqlite3.Connection:
    """Connection for the current app context, opened on first use."""
    if "db" not in g:
        g.db = connect(_database_path())
    return g.db


def close_db(_exc=None) -> None:
    """Close the request's connection on teardown."""
    conn = g.pop("db", None)
    if conn is not None:
        conn.close()


@contextmanager
def transaction():
    """Run a block as one write transaction.

    BEGIN IMMEDIATE takes SQLite's write lock up front, so reads inside the
    block see every write committed before it started. Any exception rolls
    the whole block back; sqlite3 errors surface as StoreUnavailable.
    """
    db = get_db()
    # sqlite3 may hold an implicit transaction from an earlier write
    if db.in_transaction:
        db.commit()
    try:
        db.execute("BEGIN IMMEDIATE")
        yield db
        db.commit()
    except sqlite3.Error as exc:
        _safe_rollback(db)
        logger.exception("Transaction rolled back: %s", exc)
        raise StoreUnavailable(str(exc)) from exc
    except BaseException:
        _safe_rollback(db)
        raise


def _safe_rollback(db) -> None:
    try:
        db.rollback()
    except sqlite3.Error:
        logger.warning("Rollback failed; connection may be unusable")


def init_db() -> None:
    """Create any missing tables and indexes."""
    conn = get_db()
    conn.executescript(SCHEMA)
    conn.commit()


@contextmanager
def _migration_lock(path: str):
    """Exclusive flock beside the database file; a no-op for :memory:."""
    if path == ":memory:":
        yield
        return
    try:
        handle = open(Path(path).with_suffix(".migration.lock"), "w")
    except OSError:
        logger.warning("Cannot open migration lock for %s; migrating unlocked", path)
        yield
        return
    with handle:
        fcntl.flock(handle, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)


def _apply(conn: sqlite3.Connection, version: int, sql: str) -> None:
    try:
        conn.executescript(sql)
    except sqlite3.OperationalError as exc:
        # Objects may already exist from a half-finished earlier run
        if "already exists" not in str(exc).lower():
            raise
    conn.execute(
        "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
        (version, datetime.now().isoformat()),
    )
    conn.commit()
    logger.info("Applied migration %d", version)


def run_migrations() -> None:
    """Apply pending migrations under an flock so concurrent workers apply each once."""
    with _migration_lock(_database_path()):
        conn = get_db()
        done = {row[0] for row in conn.execute("SELECT version FROM schema_version")}
        for version, sql in MIGRATIONS:
            if version not in done:
                _apply(conn, version, sql)


def init_app(app) -> None:
    """Close connections on teardown; create the schema before the first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_schema():
        if not app.extensions.get("quizrank_schema"):
            init_db()
            run_migrations()
            app.extensions["quizrank_schema"] = True

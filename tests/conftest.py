"""
Test fixtures for QuizRank.

Provides app, client, auth_client, admin_client, and db fixtures with
file-based SQLite, plus helpers for seeding users and results.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

sys.path.insert(0, str(Path(__file__).parent.parent))

STUDENT_PASSWORD = "testpass123"
ADMIN_PASSWORD = "adminpass123"


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
        "RATELIMIT_ENABLED": False,
    })

    with app.app_context():
        from database import init_db, run_migrations, get_db

        init_db()
        run_migrations()

        # Seed a student (id 1) and an admin (id 2)
        now = datetime.now().isoformat()
        db = get_db()
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, role, created_at, stats_updated_at) "
            "VALUES (1, 'Test Student', 'test@example.com', ?, 'user', ?, ?)",
            (generate_password_hash(STUDENT_PASSWORD), now, now),
        )
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, role, created_at, stats_updated_at) "
            "VALUES (2, 'Test Admin', 'admin@example.com', ?, 'admin', ?, ?)",
            (generate_password_hash(ADMIN_PASSWORD), now, now),
        )
        db.commit()

        yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def auth_client(app):
    """Authenticated test client (logged in as the test student)."""
    client = app.test_client()
    with client:
        client.post("/login", json={"email": "test@example.com", "password": STUDENT_PASSWORD})
        yield client


@pytest.fixture
def admin_client(app):
    """Authenticated test client logged in as the admin."""
    client = app.test_client()
    with client:
        client.post("/login", json={"email": "admin@example.com", "password": ADMIN_PASSWORD})
        yield client


@pytest.fixture
def db(app):
    """A separate connection for inspecting committed state.

    Opened outside any app context, so it works alongside the client
    fixtures without disturbing their context stack.
    """
    from database import connect

    conn = connect(app.config["DATABASE"])
    yield conn
    conn.close()


@pytest.fixture
def make_user(app):
    """Factory: insert a user and return its id."""
    counter = {"n": 0}

    def _make(name: str | None = None, role: str = "user") -> int:
        from db_stores import UserStoreDB
        counter["n"] += 1
        name = name or f"Player {counter['n']}"
        email = f"{name.lower().replace(' ', '.')}.{counter['n']}@example.com"
        with app.app_context():
            return UserStoreDB.create(name, email, "", role)

    return _make


@pytest.fixture
def add_result(app):
    """Factory: append a raw result row without triggering any recompute."""
    def _add(user_id: int, quiz_id: str, score: int) -> None:
        from db_stores import ResultStoreDB
        with app.app_context():
            ResultStoreDB.append(user_id, quiz_id, score)

    return _add

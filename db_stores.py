"""
DB-backed store classes for QuizRank.

Users (with their embedded stats), quiz results, and the leaderboard
projection. Methods that take a ``db`` argument run inside the caller's
transaction and never commit; the rest commit their own writes.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Optional

from database import get_db
from errors import StoreUnavailable, UserNotFound
from ranking import QuizStats, round_half_up


def _store_errors(f: Callable) -> Callable:
    """Surface sqlite3 failures as StoreUnavailable."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"{f.__qualname__}: {exc}") from exc
    return decorated


RANKED_USERS = "role != 'admin'"
STATS_COLUMNS = "quizzes_attended, total_score, average_score, rank, stats_updated_at"


def stats_from_row(row) -> dict:
    return {
        "quizzes_attended": row["quizzes_attended"],
        "total_score": row["total_score"],
        "average_score": row["average_score"],
        "rank": row["rank"],
        "last_updated": row["stats_updated_at"],
    }


# ── Users ────────────────────────────────────────────────────────────


class UserStoreDB:
    """User accounts. Stats start zeroed with no rank."""

    @staticmethod
    @_store_errors
    def create(name: str, email: str, password_hash: str = "", role: str = "user") -> int:
        now = datetime.now().isoformat()
        db = get_db()
        cur = db.execute(
            "INSERT INTO users (name, email, password_hash, role, created_at, stats_updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (name, email, password_hash, role, now, now),
        )
        db.commit()
        return cur.lastrowid

    @staticmethod
    @_store_errors
    def get(user_id: int) -> Optional[dict]:
        db = get_db()
        row = db.execute(
            f"SELECT id, name, email, role, created_at, {STATS_COLUMNS} FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        return dict(row) if row else None

    @staticmethod
    @_store_errors
    def get_by_email(email: str):
        db = get_db()
        return db.execute(
            "SELECT id, name, email, password_hash, role FROM users WHERE email = ?",
            (email,),
        ).fetchone()

    @staticmethod
    def exists(user_id: int) -> bool:
        return UserStoreDB.get(user_id) is not None

    @staticmethod
    def delete(db, user_id: int) -> bool:
        """Remove the account; results go with it via ON DELETE CASCADE."""
        cur = db.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cur.rowcount > 0

    @staticmethod
    @_store_errors
    def list_with_stats() -> list[dict]:
        """All accounts, newest first, with their stored stats."""
        db = get_db()
        rows = db.execute(
            f"SELECT id, name, email, role, created_at, {STATS_COLUMNS} "
            "FROM users ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [dict(r) for r in rows]

    @staticmethod
    def non_admin_ids(db) -> list[int]:
        rows = db.execute(f"SELECT id FROM users WHERE {RANKED_USERS} ORDER BY id").fetchall()
        return [r["id"] for r in rows]

    @staticmethod
    @_store_errors
    def count() -> int:
        db = get_db()
        return db.execute("SELECT COUNT(*) AS c FROM users").fetchone()["c"]


# ── Results ──────────────────────────────────────────────────────────


class ResultStoreDB:
    """Append-only quiz submissions."""

    @staticmethod
    @_store_errors
    def append(user_id: int, quiz_id: str, score: int, total_questions: int | None = None,
               correct_answers: int | None = None, time_taken: int | None = None) -> dict:
        submitted_at = datetime.now().isoformat()
        db = get_db()
        cur = db.execute(
            "INSERT INTO results (user_id, quiz_id, score, total_questions, correct_answers, "
            "time_taken, submitted_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (user_id, quiz_id, score, total_questions, correct_answers, time_taken, submitted_at),
        )
        db.commit()
        return {
            "id": cur.lastrowid,
            "user_id": user_id,
            "quiz_id": quiz_id,
            "score": score,
            "total_questions": total_questions,
            "correct_answers": correct_answers,
            "time_taken": time_taken,
            "submitted_at": submitted_at,
        }

    @staticmethod
    def for_user(db, user_id: int) -> list[dict]:
        rows = db.execute(
            "SELECT quiz_id, score FROM results WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    @staticmethod
    @_store_errors
    def recent_for_user(user_id: int, n: int = 5) -> list[dict]:
        db = get_db()
        rows = db.execute(
            "SELECT id, quiz_id, score, total_questions, correct_answers, time_taken, submitted_at "
            "FROM results WHERE user_id = ? ORDER BY submitted_at DESC, id DESC LIMIT ?",
            (user_id, n),
        ).fetchall()
        return [dict(r) for r in rows]

    @staticmethod
    def delete_for_user(db, user_id: int) -> int:
        cur = db.execute("DELETE FROM results WHERE user_id = ?", (user_id,))
        return cur.rowcount

    @staticmethod
    @_store_errors
    def summary() -> dict:
        """Result count and mean score across every submission."""
        db = get_db()
        row = db.execute(
            "SELECT COUNT(*) AS total_results, AVG(score) AS avg_score FROM results"
        ).fetchone()
        avg = row["avg_score"]
        return {
            "total_results": row["total_results"],
            "avg_score": round_half_up(avg) if avg is not None else 0,
        }

    @staticmethod
    @_store_errors
    def quiz_analytics(limit: int = 10) -> list[dict]:
        """Per-quiz attempt counts and score spread, most attempted first."""
        db = get_db()
        rows = db.execute(
            "SELECT quiz_id, COUNT(*) AS attempts, AVG(score) AS avg_score, "
            "MAX(score) AS max_score, MIN(score) AS min_score "
            "FROM results GROUP BY quiz_id ORDER BY attempts DESC, quiz_id LIMIT ?",
            (limit,),
        ).fetchall()
        return [
            {
                "quiz_id": r["quiz_id"],
                "attempts": r["attempts"],
                "avg_score": round(r["avg_score"], 2),
                "max_score": r["max_score"],
                "min_score": r["min_score"],
            }
            for r in rows
        ]

    @staticmethod
    @_store_errors
    def daily_activity(days: int = 7) -> list[dict]:
        """Submissions per calendar day over the last ``days`` days, oldest first."""
        since = (datetime.now() - timedelta(days=days)).isoformat()
        db = get_db()
        rows = db.execute(
            "SELECT substr(submitted_at, 1, 10) AS day, COUNT(*) AS count "
            "FROM results WHERE submitted_at >= ? GROUP BY day ORDER BY day",
            (since,),
        ).fetchall()
        return [dict(r) for r in rows]


# ── Stats ────────────────────────────────────────────────────────────


class UserStatsDB:
    """The per-user aggregate stored on the users row."""

    @staticmethod
    @_store_errors
    def get(user_id: int) -> dict:
        db = get_db()
        row = db.execute(
            f"SELECT {STATS_COLUMNS} FROM users WHERE id = ?", (user_id,)
        ).fetchone()
        if not row:
            raise UserNotFound(user_id)
        return stats_from_row(row)

    @staticmethod
    def write_aggregate(db, user_id: int, stats: QuizStats, updated_at: str) -> None:
        db.execute(
            "UPDATE users SET quizzes_attended = ?, total_score = ?, average_score = ?, "
            "stats_updated_at = ? WHERE id = ?",
            (stats.quizzes_attended, stats.total_score, stats.average_score,
             updated_at, user_id),
        )

    @staticmethod
    def non_admin_stats(db) -> list[dict]:
        """Stats for every ranked user, in id order."""
        rows = db.execute(
            "SELECT id, quizzes_attended, total_score, average_score FROM users "
            f"WHERE {RANKED_USERS} ORDER BY id"
        ).fetchall()
        return [dict(r) for r in rows]

    @staticmethod
    def write_ranks(db, ranks: dict[int, int]) -> None:
        db.executemany(
            "UPDATE users SET rank = ? WHERE id = ?",
            [(rank, user_id) for user_id, rank in ranks.items()],
        )
        db.execute(f"UPDATE users SET rank = NULL WHERE NOT ({RANKED_USERS})")


# ── Leaderboard ──────────────────────────────────────────────────────


class LeaderboardStoreDB:
    """Read-only projection of stored ranks. Never recomputes."""

    _VISIBLE = f"{RANKED_USERS} AND NOT (quizzes_attended = 0 AND total_score = 0)"

    @staticmethod
    @_store_errors
    def get(limit: int = 100, offset: int = 0) -> list[dict]:
        db = get_db()
        rows = db.execute(
            "SELECT id, name, email, total_score, quizzes_attended, average_score, rank "
            f"FROM users WHERE {LeaderboardStoreDB._VISIBLE} "
            "ORDER BY rank IS NULL, rank ASC, total_score DESC, quizzes_attended DESC, "
            "average_score DESC, id ASC LIMIT ? OFFSET ?",
            (limit, offset),
        ).fetchall()
        return [
            {
                "userId": r["id"],
                "name": r["name"],
                "username": r["email"].split("@")[0],
                "email": r["email"],
                "totalScore": r["total_score"],
                "quizzesCompleted": r["quizzes_attended"],
                "avgScore": r["average_score"],
                "rank": r["rank"],
            }
            for r in rows
        ]

    @staticmethod
    @_store_errors
    def count() -> int:
        db = get_db()
        return db.execute(
            f"SELECT COUNT(*) AS c FROM users WHERE {LeaderboardStoreDB._VISIBLE}"
        ).fetchone()["c"]

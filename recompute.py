"""
Recompute orchestration for user stats and ranks.

update_one() refreshes a single user's aggregate after a submission.
recompute_all() refreshes every non-admin aggregate and reassigns all ranks
inside one write transaction: either every rank of the pass is committed or
none is, so readers keep seeing the previous table until a pass succeeds.
reranked_transaction() wraps another write (user removal) so the write and the
pass that closes its gap commit together.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from flask import current_app, has_app_context

from database import transaction
from db_stores import ResultStoreDB, UserStatsDB, UserStoreDB
from errors import UserNotFound
from ranking import QuizStats, aggregate_scores, assign_ranks

logger = logging.getLogger(__name__)

# Serializes passes from request threads of one process; SQLite's write
# lock (BEGIN IMMEDIATE) serializes across processes.
_pass_lock = threading.Lock()

RECOMPUTE_JOB_ID = "rank-recompute"


@dataclass
class RecomputeReport:
    users_ranked: int
    duration_ms: float


def _refresh(db, user_id: int, now: str) -> QuizStats:
    stats = aggregate_scores(ResultStoreDB.for_user(db, user_id))
    UserStatsDB.write_aggregate(db, user_id, stats, now)
    return stats


def _rank_pass(db) -> int:
    now = datetime.now().isoformat()
    for user_id in UserStoreDB.non_admin_ids(db):
        _refresh(db, user_id, now)
    ranks = assign_ranks(UserStatsDB.non_admin_stats(db))
    UserStatsDB.write_ranks(db, ranks)
    return len(ranks)


def update_one(user_id: int) -> dict:
    """Recompute one user's aggregate (rank untouched) and return their stats."""
    with transaction() as db:
        if not db.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
            raise UserNotFound(user_id)
        stats = _refresh(db, user_id, datetime.now().isoformat())
    logger.debug("Updated stats for user %s: %s", user_id, stats)
    return UserStatsDB.get(user_id)


@contextmanager
def reranked_transaction():
    """Write transaction that runs a full pass before it commits.

    The block's own writes and the new ranks commit together; if either
    fails, both roll back.
    """
    with _pass_lock, transaction() as db:
        yield db
        ranked = _rank_pass(db)
    logger.info("Re-ranked %d users after write", ranked)


def recompute_all() -> RecomputeReport:
    """Full pass: aggregate every non-admin user, then rank them 1..N."""
    started = time.perf_counter()
    with _pass_lock:
        try:
            with transaction() as db:
                ranked = _rank_pass(db)
        except Exception:
            logger.exception("Rank recompute failed; previous ranks kept")
            raise

    report = RecomputeReport(
        users_ranked=ranked,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    logger.info("Updated ranks for %d users in %.1fms", report.users_ranked, report.duration_ms)
    return report


def run_recompute_job() -> int:
    """Task-queue entry point. Builds an app context when run by a worker."""
    if has_app_context():
        return recompute_all().users_ranked

    from app import create_app
    app = create_app()
    with app.app_context():
        return recompute_all().users_ranked


def request_recompute():
    """Trigger a full pass according to RANK_RECOMPUTE_MODE.

    "sync" returns a RecomputeReport once the pass has committed.
    "deferred" enqueues the pass and returns the queued job (or the result
    when no queue is configured and the task ran inline).
    """
    mode = current_app.config.get("RANK_RECOMPUTE_MODE", "sync")
    if mode == "deferred":
        from tasks import enqueue
        return enqueue(run_recompute_job, job_id=RECOMPUTE_JOB_ID)
    return recompute_all()

"""
Submission ingress and user removal.

Both events end in a full rank pass: a new result can move anyone's
position, and a removed user leaves a gap that the next pass closes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from audit import log_event
from db_stores import ResultStoreDB, UserStatsDB, UserStoreDB
from errors import InvalidSubmission, UserNotFound
from recompute import request_recompute, reranked_transaction, update_one

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class Submission:
    user_id: int
    quiz_id: str
    score: int
    total_questions: Optional[int] = None
    correct_answers: Optional[int] = None
    time_taken: Optional[int] = None


def _optional_count(payload: dict, key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidSubmission(f"{key} must be a non-negative integer")
    return value


def validate_submission(payload: dict[str, Any]) -> Submission:
    """Normalize a raw payload or raise InvalidSubmission.

    Scores are whole percentages; floats with no fractional part are
    accepted, anything else outside 0..100 is rejected.
    """
    user_id = payload.get("user_id")
    quiz_id = payload.get("quiz_id")
    score = payload.get("score")

    if user_id is None or user_id == "":
        raise InvalidSubmission("Missing user id")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise InvalidSubmission("User id must be an integer")
    if quiz_id is None:
        raise InvalidSubmission("Missing quiz id")
    if isinstance(quiz_id, bool) or not isinstance(quiz_id, (str, int)):
        raise InvalidSubmission("Quiz id must be a string or integer")
    quiz_id = str(quiz_id).strip()
    if not quiz_id:
        raise InvalidSubmission("Missing quiz id")
    if score is None:
        raise InvalidSubmission("Missing score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise InvalidSubmission("Score must be an integer")
    if isinstance(score, float):
        if not score.is_integer():
            raise InvalidSubmission("Score must be an integer")
        score = int(score)
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidSubmission(f"Score must be between {MIN_SCORE} and {MAX_SCORE}")

    return Submission(
        user_id=user_id,
        quiz_id=quiz_id,
        score=score,
        total_questions=_optional_count(payload, "total_questions"),
        correct_answers=_optional_count(payload, "correct_answers"),
        time_taken=_optional_count(payload, "time_taken"),
    )


def submit_result(payload: dict[str, Any]) -> dict:
    """Store one quiz result and bring stats and ranks up to date.

    In sync mode the returned stats already carry the rank from a pass that
    includes this result.
    """
    sub = validate_submission(payload)
    if not UserStoreDB.exists(sub.user_id):
        raise UserNotFound(sub.user_id)

    record = ResultStoreDB.append(
        sub.user_id, sub.quiz_id, sub.score,
        sub.total_questions, sub.correct_answers, sub.time_taken,
    )
    update_one(sub.user_id)
    request_recompute()
    logger.info("Result %s stored for user %s (quiz=%s score=%s)",
                record["id"], sub.user_id, sub.quiz_id, sub.score)
    return {"result": record, "stats": UserStatsDB.get(sub.user_id)}


def delete_user(user_id: int, acting_user_id: Optional[int] = None) -> int:
    """Remove a user and their results and re-rank everyone left.

    The removal and the rank pass commit as one transaction, so a failed
    pass leaves the user in place and the call can be retried. Returns the
    number of results removed.
    """
    with reranked_transaction() as db:
        if not db.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
            raise UserNotFound(user_id)
        removed = ResultStoreDB.delete_for_user(db, user_id)
        UserStoreDB.delete(db, user_id)

    log_event("user_deleted", acting_user_id, f"deleted_user={user_id} results={removed}")
    return removed

"""
Stats aggregation and rank assignment.

Pure functions with no database access: the stores feed them rows and
persist what they return. Only a user's best attempt at each quiz counts.

Ordering for ranks (each key breaks ties in the previous one):
  1. total score, descending
  2. quizzes attended, descending
  3. average score, descending
Users equal on all three keep their input order (sorted() is stable), so
callers must pass users in a fixed order to get repeatable ranks.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class QuizStats:
    quizzes_attended: int = 0
    total_score: int = 0
    average_score: int = 0


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (round() is banker's)."""
    return int(math.floor(value + 0.5))


def best_scores(submissions: Iterable[Mapping]) -> dict[str, int]:
    """Map quiz_id -> highest score across the given submissions."""
    best: dict[str, int] = {}
    for sub in submissions:
        quiz_id = str(sub["quiz_id"])
        score = sub["score"]
        if quiz_id not in best or score > best[quiz_id]:
            best[quiz_id] = score
    return best


def aggregate_scores(submissions: Iterable[Mapping]) -> QuizStats:
    """Compute a user's aggregate from their full submission history.

    >>> aggregate_scores([{"quiz_id": "q1", "score": 60}, {"quiz_id": "q1", "score": 90}])
    QuizStats(quizzes_attended=1, total_score=90, average_score=90)
    """
    best = best_scores(submissions)
    attended = len(best)
    if attended == 0:
        return QuizStats()
    total = round_half_up(sum(best.values()))
    return QuizStats(
        quizzes_attended=attended,
        total_score=total,
        average_score=round_half_up(total / attended),
    )


def rank_key(stats: Mapping) -> tuple[int, int, int]:
    """Sort key placing the strongest user first."""
    return (
        -(stats.get("total_score") or 0),
        -(stats.get("quizzes_attended") or 0),
        -(stats.get("average_score") or 0),
    )


def assign_ranks(users: Iterable[Mapping]) -> dict[int, int]:
    """Return {user_id: rank} with ranks 1..N, no gaps and no shared ranks.

    Every user passed in is ranked, including users with no submissions.
    """
    ordered = sorted(users, key=rank_key)
    return {u["id"]: position for position, u in enumerate(ordered, 1)}

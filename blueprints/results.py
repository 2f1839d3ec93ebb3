"""Quiz result submission and per-user stats routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from db_stores import ResultStoreDB, UserStatsDB
from extensions import limiter
from helpers import current_user_id
from submissions import submit_result

bp = Blueprint("results", __name__)


def _stats_json(stats: dict) -> dict:
    return {
        "quizzesAttended": stats["quizzes_attended"],
        "totalScore": stats["total_score"],
        "averageScore": stats["average_score"],
        "rank": stats["rank"],
        "lastUpdated": stats["last_updated"],
    }


def _result_json(record: dict) -> dict:
    return {
        "id": record["id"],
        "quizId": record["quiz_id"],
        "score": record["score"],
        "totalQuestions": record["total_questions"],
        "correctAnswers": record["correct_answers"],
        "timeTaken": record["time_taken"],
        "submittedAt": record["submitted_at"],
    }


def _submit_limit() -> str:
    return current_app.config.get("SUBMIT_RATE_LIMIT", "30 per minute")


@bp.route("/api/results/submit", methods=["POST"])
@login_required
@limiter.limit(_submit_limit)
def api_submit_result():
    data = request.get_json(silent=True) or {}
    outcome = submit_result({
        "user_id": current_user_id(),
        "quiz_id": data.get("quiz"),
        "score": data.get("score"),
        "total_questions": data.get("totalQuestions"),
        "correct_answers": data.get("correctAnswers"),
        "time_taken": data.get("timeTaken"),
    })
    return jsonify({
        "message": "Result submitted successfully",
        "result": _result_json(outcome["result"]),
        "stats": _stats_json(outcome["stats"]),
    }), 201


@bp.route("/api/results/mine")
@login_required
def api_my_results():
    recent = ResultStoreDB.recent_for_user(current_user_id(), 5)
    return jsonify({"results": [_result_json(r) for r in recent]})


@bp.route("/api/stats/me")
@login_required
def api_my_stats():
    uid = current_user_id()
    return jsonify({"userId": uid, "stats": _stats_json(UserStatsDB.get(uid))})


@bp.route("/api/users/<int:user_id>/stats")
def api_user_stats(user_id):
    return jsonify({"userId": user_id, "stats": _stats_json(UserStatsDB.get(user_id))})

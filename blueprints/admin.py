"""Admin routes: user list, platform totals, analytics, rank recompute, user removal."""

from __future__ import annotations

from flask import Blueprint, jsonify

from audit import log_event
from db_stores import ResultStoreDB, UserStoreDB
from helpers import admin_required, current_user_id
from recompute import recompute_all
from submissions import delete_user

bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@bp.route("/users")
@admin_required
def api_users():
    users = [
        {
            "id": u["id"],
            "name": u["name"],
            "email": u["email"],
            "role": u["role"],
            "createdAt": u["created_at"],
            "totalQuizzes": u["quizzes_attended"],
            "avgScore": u["average_score"],
            "totalScore": u["total_score"],
            "rank": u["rank"],
        }
        for u in UserStoreDB.list_with_stats()
    ]
    return jsonify({"users": users})


@bp.route("/stats")
@admin_required
def api_stats():
    summary = ResultStoreDB.summary()
    return jsonify({
        "totalUsers": UserStoreDB.count(),
        "totalResults": summary["total_results"],
        "avgScore": summary["avg_score"],
    })


@bp.route("/recalculate-ranks", methods=["POST"])
@admin_required
def api_recalculate_ranks():
    report = recompute_all()
    log_event("ranks_recalculated", current_user_id(), f"users={report.users_ranked}")
    return jsonify({
        "message": "Ranks recalculated successfully",
        "usersUpdated": report.users_ranked,
        "durationMs": report.duration_ms,
    })


@bp.route("/users/<int:user_id>", methods=["DELETE"])
@admin_required
def api_delete_user(user_id):
    if user_id == current_user_id():
        return jsonify({"error": "You cannot delete your own account"}), 400
    removed = delete_user(user_id, acting_user_id=current_user_id())
    return jsonify({"message": "User deleted successfully", "resultsRemoved": removed})


@bp.route("/analytics")
@admin_required
def api_analytics():
    quizzes = [
        {
            "quizId": q["quiz_id"],
            "totalAttempts": q["attempts"],
            "avgScore": q["avg_score"],
            "maxScore": q["max_score"],
            "minScore": q["min_score"],
        }
        for q in ResultStoreDB.quiz_analytics(limit=10)
    ]
    return jsonify({
        "quizAnalytics": quizzes,
        "dailyActivity": ResultStoreDB.daily_activity(days=7),
    })

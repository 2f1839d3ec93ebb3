"""Public leaderboard route. Serves stored ranks only."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from db_stores import LeaderboardStoreDB
from helpers import page_args, page_envelope

bp = Blueprint("leaderboard", __name__)


@bp.route("/api/leaderboard")
def api_leaderboard():
    page, limit = page_args(
        default_limit=current_app.config.get("LEADERBOARD_DEFAULT_LIMIT", 100),
        max_limit=current_app.config.get("LEADERBOARD_MAX_LIMIT", 500),
    )
    entries = LeaderboardStoreDB.get(limit=limit, offset=(page - 1) * limit)
    return jsonify(page_envelope(entries, LeaderboardStoreDB.count(), page, limit))

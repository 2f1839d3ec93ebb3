"""
QuizRank Flask application.

Accepts quiz results, keeps per-user stats, and serves a leaderboard ranked
by best-per-quiz totals.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response, jsonify

import database
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from errors import RankingError
from extensions import limiter
from logging_config import init_logging
from tasks import init_tasks


def _load_config(app: Flask, overrides: dict[str, Any] | None) -> None:
    from config import TestingConfig, config_by_name

    if overrides is not None:
        app.config.from_object(TestingConfig)
        app.config.update(overrides)
        app.config.setdefault("RATELIMIT_ENABLED", False)
        return

    cfg = config_by_name.get(os.environ.get("FLASK_ENV", "development"),
                             config_by_name["development"])
    if hasattr(cfg, "validate"):
        cfg.validate()
    app.config.from_object(cfg)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RankingError)
    def ranking_error(exc: RankingError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(404)
    def not_found(_exc):
        return jsonify({"error": "Not found", "kind": "not_found"}), 404

    @app.errorhandler(429)
    def rate_limited(exc):
        return jsonify({"error": f"Rate limit exceeded: {exc.description}",
                        "kind": "rate_limited"}), 429


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    _load_config(app, test_config)

    init_logging(app)
    init_tasks(app)
    database.init_app(app)
    limiter.init_app(app)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    register_blueprints(app)
    _register_error_handlers(app)

    @app.after_request
    def security_headers(response: Response) -> Response:
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Cache-Control", "no-store")
        return response

    # Periodic rank pass; RQ workers and test apps never run the scheduler
    if not app.config.get("TESTING") and not os.environ.get("QUIZRANK_WORKER"):
        from scheduler import init_scheduler
        init_scheduler(app)

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)

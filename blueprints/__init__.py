"""
Blueprint registration for QuizRank.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.results import bp as results_bp
    from blueprints.leaderboard import bp as leaderboard_bp
    from blueprints.admin import bp as admin_bp

    app.register_blueprint(results_bp)
    app.register_blueprint(leaderboard_bp)
    app.register_blueprint(admin_bp)

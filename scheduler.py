"""
Periodic rank recompute.

A full pass on a fixed interval catches up ranks when submissions run in
deferred mode or a synchronous pass failed after its result was stored.
"""

from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from errors import RankingError


def init_scheduler(app):
    """Start the background scheduler. Returns it, or None when disabled."""
    minutes = app.config.get("RANK_RECOMPUTE_INTERVAL_MINUTES", 0)
    if not minutes or minutes <= 0:
        app.logger.info("Periodic rank recompute disabled")
        return None

    scheduler = BackgroundScheduler(daemon=True)

    def _recompute_ranks():
        from recompute import recompute_all
        with app.app_context():
            try:
                recompute_all()
            except RankingError as e:
                app.logger.error("Scheduled rank recompute failed: %s", e)

    scheduler.add_job(
        func=_recompute_ranks,
        trigger="interval",
        minutes=minutes,
        id="rank_recompute",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    scheduler.start()
    app.logger.info("Scheduler started (rank recompute every %d min)", minutes)
    return scheduler

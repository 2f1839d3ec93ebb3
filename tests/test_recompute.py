"""Tests for recompute.py: single-user refresh and full rank passes."""

import sqlite3
import threading
from unittest.mock import patch

import pytest

from db_stores import UserStatsDB
from errors import StoreUnavailable, UserNotFound
from recompute import (
    RECOMPUTE_JOB_ID,
    recompute_all,
    request_recompute,
    run_recompute_job,
    update_one,
)


def _ranked_state(db):
    """Stats and ranks of every user, minus the timestamp."""
    rows = db.execute(
        "SELECT id, quizzes_attended, total_score, average_score, rank FROM users ORDER BY id"
    ).fetchall()
    return [tuple(r) for r in rows]


class TestUpdateOne:
    def test_scenario_retake(self, app, add_result):
        add_result(1, "q1", 60)
        add_result(1, "q1", 90)
        with app.app_context():
            stats = update_one(1)
        assert stats["quizzes_attended"] == 1
        assert stats["total_score"] == 90
        assert stats["average_score"] == 90

    def test_does_not_touch_rank(self, app, add_result):
        with app.app_context():
            recompute_all()
            rank_before = UserStatsDB.get(1)["rank"]
            add_result(1, "q1", 50)
            stats = update_one(1)
        assert stats["rank"] == rank_before

    def test_no_submissions_resets_and_stamps(self, app, db):
        db.execute(
            "UPDATE users SET quizzes_attended=3, total_score=200, average_score=67, "
            "stats_updated_at='' WHERE id=1"
        )
        db.commit()
        with app.app_context():
            stats = update_one(1)
        assert (stats["quizzes_attended"], stats["total_score"], stats["average_score"]) == (0, 0, 0)
        assert stats["last_updated"] != ""

    def test_unknown_user(self, app):
        with app.app_context():
            with pytest.raises(UserNotFound):
                update_one(999)

    def test_store_failure_leaves_stats_untouched(self, app, add_result):
        add_result(1, "q1", 80)
        with app.app_context():
            update_one(1)
            add_result(1, "q2", 70)
            with patch("recompute.ResultStoreDB.for_user",
                       side_effect=sqlite3.OperationalError("disk I/O error")):
                with pytest.raises(StoreUnavailable):
                    update_one(1)
            assert UserStatsDB.get(1)["total_score"] == 80


class TestRecomputeAll:
    def test_ranks_contiguous_and_admin_unranked(self, app, make_user, add_result):
        a = make_user("Alice")
        b = make_user("Bob")
        add_result(a, "q1", 90)
        add_result(b, "q1", 40)
        with app.app_context():
            report = recompute_all()
            assert report.users_ranked == 3  # student 1, Alice, Bob
            assert UserStatsDB.get(a)["rank"] == 1
            assert UserStatsDB.get(b)["rank"] == 2
            assert UserStatsDB.get(1)["rank"] == 3
            assert UserStatsDB.get(2)["rank"] is None

    def test_refreshes_stale_aggregates(self, app, db, add_result):
        add_result(1, "q1", 75)
        with app.app_context():
            recompute_all()
            stats = UserStatsDB.get(1)
        assert stats["total_score"] == 75
        assert stats["rank"] == 1

    def test_idempotent(self, app, db, make_user, add_result):
        x = make_user("X")
        y = make_user("Y")
        add_result(x, "q1", 80)
        add_result(x, "q2", 60)
        add_result(y, "q1", 70)
        add_result(y, "q2", 70)
        with app.app_context():
            recompute_all()
            first = _ranked_state(db)
            recompute_all()
            recompute_all()
            assert _ranked_state(db) == first

    def test_full_tie_is_stable(self, app, make_user, add_result):
        x = make_user("X")
        y = make_user("Y")
        add_result(x, "q1", 80)
        add_result(x, "q2", 60)
        add_result(y, "q1", 70)
        add_result(y, "q2", 70)
        with app.app_context():
            recompute_all()
            sx, sy = UserStatsDB.get(x), UserStatsDB.get(y)
            assert (sx["total_score"], sx["quizzes_attended"], sx["average_score"]) == (140, 2, 70)
            assert (sy["total_score"], sy["quizzes_attended"], sy["average_score"]) == (140, 2, 70)
            first = (sx["rank"], sy["rank"])
            for _ in range(3):
                recompute_all()
                assert (UserStatsDB.get(x)["rank"], UserStatsDB.get(y)["rank"]) == first
        assert sorted(first) == [1, 2]

    def test_failed_pass_commits_nothing(self, app, db, make_user, add_result):
        u = make_user()
        add_result(u, "q1", 50)
        with app.app_context():
            recompute_all()
        before = _ranked_state(db)

        add_result(1, "q1", 100)
        with app.app_context():
            with patch("recompute.assign_ranks",
                       side_effect=sqlite3.OperationalError("database is locked")):
                with pytest.raises(StoreUnavailable):
                    recompute_all()
        assert _ranked_state(db) == before

    def test_failure_on_one_user_aborts_pass(self, app, db, make_user, add_result):
        users = [make_user() for _ in range(3)]
        for i, uid in enumerate(users):
            add_result(uid, "q1", 10 * (i + 1))
        with app.app_context():
            recompute_all()
        before = _ranked_state(db)

        add_result(users[0], "q2", 100)
        from db_stores import ResultStoreDB
        real_for_user = ResultStoreDB.for_user
        calls = {"n": 0}

        def flaky(conn, user_id):
            calls["n"] += 1
            if calls["n"] == 3:
                raise sqlite3.OperationalError("disk I/O error")
            return real_for_user(conn, user_id)

        with app.app_context():
            with patch("recompute.ResultStoreDB.for_user", side_effect=flaky):
                with pytest.raises(StoreUnavailable):
                    recompute_all()
        assert _ranked_state(db) == before

    def test_no_users_besides_admin(self, app, db):
        db.execute("DELETE FROM users WHERE id = 1")
        db.commit()
        with app.app_context():
            assert recompute_all().users_ranked == 0


class TestConcurrentPasses:
    def test_concurrent_submissions_all_counted(self, app, make_user):
        from submissions import submit_result

        users = [make_user() for _ in range(4)]
        errors = []

        def worker(uid):
            try:
                with app.app_context():
                    for q in range(3):
                        submit_result({"user_id": uid, "quiz_id": f"q{q}", "score": 10 + uid})
            except Exception as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(uid,)) for uid in users]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with app.app_context():
            recompute_all()
            for uid in users:
                assert UserStatsDB.get(uid)["quizzes_attended"] == 3
            ranks = sorted(UserStatsDB.get(uid)["rank"] for uid in users + [1])
        assert ranks == [1, 2, 3, 4, 5]


class TestRequestRecompute:
    def test_sync_mode_runs_pass(self, app, add_result):
        add_result(1, "q1", 40)
        with app.app_context():
            report = request_recompute()
            assert report.users_ranked == 1
            assert UserStatsDB.get(1)["rank"] == 1

    def test_deferred_mode_enqueues(self, app):
        app.config["RANK_RECOMPUTE_MODE"] = "deferred"
        with app.app_context():
            with patch("tasks.enqueue", return_value="job-1") as enqueue:
                assert request_recompute() == "job-1"
        enqueue.assert_called_once_with(run_recompute_job, job_id=RECOMPUTE_JOB_ID)

    def test_deferred_mode_without_queue_runs_inline(self, app, add_result):
        app.config["RANK_RECOMPUTE_MODE"] = "deferred"
        add_result(1, "q1", 40)
        with app.app_context():
            assert request_recompute() == 1
            assert UserStatsDB.get(1)["rank"] == 1

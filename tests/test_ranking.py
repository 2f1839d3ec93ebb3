"""Tests for ranking.py: best-per-quiz aggregation and rank ordering."""

import itertools

import pytest

from ranking import QuizStats, aggregate_scores, assign_ranks, best_scores, rank_key, round_half_up


def _subs(*pairs):
    return [{"quiz_id": q, "score": s} for q, s in pairs]


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [
        (0, 0), (0.4, 0), (0.5, 1), (2.5, 3), (69.5, 70), (70.49, 70),
    ])
    def test_rounds_half_away_from_zero(self, value, expected):
        assert round_half_up(value) == expected


class TestAggregateScores:
    def test_no_submissions(self):
        assert aggregate_scores([]) == QuizStats(0, 0, 0)

    def test_retake_keeps_best(self):
        stats = aggregate_scores(_subs(("q1", 60), ("q1", 90)))
        assert stats == QuizStats(quizzes_attended=1, total_score=90, average_score=90)

    def test_lower_retake_does_not_replace_best(self):
        stats = aggregate_scores(_subs(("q1", 90), ("q1", 40)))
        assert stats.total_score == 90

    def test_total_is_sum_of_best_per_quiz(self):
        subs = _subs(("q1", 80), ("q2", 60), ("q1", 70), ("q3", 0))
        stats = aggregate_scores(subs)
        assert stats.quizzes_attended == 3
        assert stats.total_score == sum(best_scores(subs).values()) == 140

    def test_average_rounds_half_up(self):
        stats = aggregate_scores(_subs(("q1", 70), ("q2", 69)))
        assert stats.total_score == 139
        assert stats.average_score == 70

    def test_zero_scores_still_count_as_attended(self):
        stats = aggregate_scores(_subs(("q1", 0), ("q2", 0)))
        assert stats == QuizStats(quizzes_attended=2, total_score=0, average_score=0)

    def test_quiz_ids_compared_as_strings(self):
        stats = aggregate_scores([{"quiz_id": 5, "score": 40}, {"quiz_id": "5", "score": 50}])
        assert stats.quizzes_attended == 1
        assert stats.total_score == 50


class TestAssignRanks:
    def test_primary_key_total_score(self):
        ranks = assign_ranks([
            {"id": 1, "total_score": 100, "quizzes_attended": 5, "average_score": 20},
            {"id": 2, "total_score": 150, "quizzes_attended": 2, "average_score": 75},
        ])
        assert ranks == {2: 1, 1: 2}

    def test_quizzes_attended_breaks_total_tie(self):
        ranks = assign_ranks([
            {"id": 1, "total_score": 100, "quizzes_attended": 1, "average_score": 100},
            {"id": 2, "total_score": 100, "quizzes_attended": 2, "average_score": 50},
        ])
        assert ranks[2] == 1

    def test_average_breaks_remaining_tie(self):
        ranks = assign_ranks([
            {"id": 1, "total_score": 100, "quizzes_attended": 2, "average_score": 50},
            {"id": 2, "total_score": 100, "quizzes_attended": 2, "average_score": 51},
        ])
        assert ranks[2] == 1

    def test_full_tie_keeps_input_order(self):
        x = {"id": 10, "total_score": 140, "quizzes_attended": 2, "average_score": 70}
        y = {"id": 11, "total_score": 140, "quizzes_attended": 2, "average_score": 70}
        assert assign_ranks([x, y]) == {10: 1, 11: 2}
        assert assign_ranks([x, y]) == assign_ranks([x, y])

    def test_inactive_users_are_ranked_last(self):
        ranks = assign_ranks([
            {"id": 1, "total_score": 0, "quizzes_attended": 0, "average_score": 0},
            {"id": 2, "total_score": 30, "quizzes_attended": 1, "average_score": 30},
        ])
        assert ranks == {2: 1, 1: 2}

    def test_ranks_are_contiguous(self):
        users = [
            {"id": i, "total_score": (i * 37) % 200, "quizzes_attended": i % 4, "average_score": i % 7}
            for i in range(1, 51)
        ]
        ranks = assign_ranks(users)
        assert sorted(ranks.values()) == list(range(1, 51))

    def test_better_tuple_means_better_rank(self):
        users = [
            {"id": i, "total_score": t, "quizzes_attended": q, "average_score": a}
            for i, (t, q, a) in enumerate(itertools.product([0, 50, 100], [1, 2], [30, 60]), 1)
        ]
        ranks = assign_ranks(users)
        by_id = {u["id"]: u for u in users}
        for u, v in itertools.permutations(by_id, 2):
            tu = (by_id[u]["total_score"], by_id[u]["quizzes_attended"], by_id[u]["average_score"])
            tv = (by_id[v]["total_score"], by_id[v]["quizzes_attended"], by_id[v]["average_score"])
            if tu > tv:
                assert ranks[u] < ranks[v]

    def test_empty_input(self):
        assert assign_ranks([]) == {}


class TestRankKey:
    def test_missing_fields_treated_as_zero(self):
        assert rank_key({}) == (0, 0, 0)

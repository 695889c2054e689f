from __future__ import annotations

import random

import pytest

from ecoclean.engines.gamification import new_user
from ecoclean.errors import InvalidInput, NotFound
from ecoclean.services.quiz import DEFAULT_QUESTIONS, QUESTIONS_KEY, QuizScoring
from ecoclean.services.users import UserDirectory
from ecoclean.store import MemoryLedgerStore


@pytest.fixture
def quiz():
    store = MemoryLedgerStore()
    store.set("user:u1", new_user("u1", "u1@example.com", "U1", "2026-01-01T00:00:00+00:00"))
    return QuizScoring(store, UserDirectory(store, identity=None), rng=random.Random(3))


def test_perfect_score_badge_granted_once(quiz):
    first = quiz.submit_quiz_result("u1", 3, 3)
    assert first.points_earned == 30
    assert first.badge_earned == "perfect_score"
    assert first.badges_unlocked == ["perfect_score"]
    user = quiz.store.get("user:u1")
    assert user["points"] == 80
    assert user["badges"] == ["perfect_score"]

    second = quiz.submit_quiz_result("u1", 3, 3)
    assert second.points_earned == 30
    assert second.badges_unlocked == []
    user = quiz.store.get("user:u1")
    assert user["points"] == 110
    assert user["badges"] == ["perfect_score"]


def test_partial_score(quiz):
    result = quiz.submit_quiz_result("u1", 1, 3)
    assert result.to_dict() == {"pointsEarned": 10, "badgeEarned": None, "badgesUnlocked": []}
    assert quiz.store.get("user:u1")["points"] == 10


def test_zero_score_awards_nothing(quiz):
    result = quiz.submit_quiz_result("u1", 0, 3)
    assert result.points_earned == 0
    assert quiz.store.get("user:u1")["points"] == 0


def test_whole_float_scores_are_accepted(quiz):
    assert quiz.submit_quiz_result("u1", 2.0, 3.0).points_earned == 20


def test_empty_quiz_is_accepted_but_not_perfect(quiz):
    result = quiz.submit_quiz_result("u1", 0, 0)
    assert result.to_dict() == {"pointsEarned": 0, "badgeEarned": None, "badgesUnlocked": []}
    user = quiz.store.get("user:u1")
    assert user["points"] == 0
    assert user["badges"] == []


@pytest.mark.parametrize(
    "score,total",
    [(5, 3), (-1, 3), (1, 0), (1.5, 3), ("3", 3), (None, 3), (3, None), (True, 3), (float("nan"), 3)],
)
def test_out_of_range_results_are_rejected(quiz, score, total):
    with pytest.raises(InvalidInput):
        quiz.submit_quiz_result("u1", score, total)
    assert quiz.store.get("user:u1")["points"] == 0


def test_unknown_user(quiz):
    with pytest.raises(NotFound):
        quiz.submit_quiz_result("ghost", 1, 3)


def test_catalog_is_seeded_once(quiz):
    assert quiz.store.get(QUESTIONS_KEY) is None
    catalog = quiz.catalog()
    assert len(catalog) == len(DEFAULT_QUESTIONS)
    assert quiz.store.get(QUESTIONS_KEY) == catalog

    quiz.store.set(QUESTIONS_KEY, catalog[:4])
    assert len(quiz.catalog()) == 4


def test_get_questions_samples_distinct_questions(quiz):
    questions = quiz.get_questions()
    assert len(questions) == 3
    assert len({q["id"] for q in questions}) == 3
    for q in questions:
        assert 0 <= q["correct"] < len(q["options"])


def test_get_questions_never_exceeds_catalog(quiz):
    assert len(quiz.get_questions(count=10)) == len(DEFAULT_QUESTIONS)

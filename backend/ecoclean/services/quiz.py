from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ecoclean.engines.gamification import apply_quiz, quiz_event
from ecoclean.errors import InvalidInput

QUESTIONS_KEY = "quiz_questions"

WASTE_OPTIONS = ["Wet Waste", "Dry Waste", "Hazardous Waste"]

DEFAULT_QUESTIONS = [
    {
        "id": 1,
        "question": "Where should banana peels go?",
        "options": WASTE_OPTIONS,
        "correct": 0,
        "explanation": "Banana peels are organic waste that decomposes naturally, so they belong in wet waste.",
    },
    {
        "id": 2,
        "question": "How should plastic bottles be disposed?",
        "options": WASTE_OPTIONS,
        "correct": 1,
        "explanation": "Plastic bottles are recyclable and should go in dry waste.",
    },
    {
        "id": 3,
        "question": "Where do expired medicines belong?",
        "options": WASTE_OPTIONS,
        "correct": 2,
        "explanation": "Expired medicines can be toxic and require special disposal methods.",
    },
    {
        "id": 4,
        "question": "What type of waste are old newspapers?",
        "options": WASTE_OPTIONS,
        "correct": 1,
        "explanation": "Newspapers are recyclable paper products that belong in dry waste.",
    },
    {
        "id": 5,
        "question": "Where should used batteries go?",
        "options": WASTE_OPTIONS,
        "correct": 2,
        "explanation": "Batteries contain toxic chemicals and should be disposed of as hazardous waste.",
    },
]


@dataclass
class QuizResult:
    points_earned: int
    badge_earned: Optional[str]
    badges_unlocked: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pointsEarned": self.points_earned,
            "badgeEarned": self.badge_earned,
            "badgesUnlocked": list(self.badges_unlocked),
        }


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be an integer")
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        raise InvalidInput(f"{name} must be an integer")
    return int(value)


def validate_quiz_result(score: Any, total_questions: Any):
    score = _as_int(score, "score")
    total_questions = _as_int(total_questions, "totalQuestions")
    if score < 0 or score > total_questions:
        raise InvalidInput("score must be between 0 and totalQuestions")
    return score, total_questions


class QuizScoring:
    def __init__(self, store, users, *, rng: Optional[random.Random] = None, sample_size: int = 3):
        self.store = store
        self.users = users
        self.rng = rng or random.Random()
        self.sample_size = sample_size

    def catalog(self) -> List[Dict[str, Any]]:
        questions = self.store.get(QUESTIONS_KEY)
        if not questions:
            questions = [dict(q) for q in DEFAULT_QUESTIONS]
            self.store.set(QUESTIONS_KEY, questions)
        return questions

    def get_questions(self, count: Optional[int] = None) -> List[Dict[str, Any]]:
        questions = self.catalog()
        count = self.sample_size if count is None else count
        return self.rng.sample(questions, min(count, len(questions)))

    def submit_quiz_result(self, user_id: str, score: Any, total_questions: Any) -> QuizResult:
        score, total_questions = validate_quiz_result(score, total_questions)

        def _mutate(user):
            updated, points, unlocked = apply_quiz(user, score, total_questions)
            return updated, (points, unlocked)

        _, (points, unlocked) = self.users.update(user_id, _mutate)
        return QuizResult(
            points_earned=points,
            badge_earned="perfect_score" if quiz_event(score, total_questions).perfect_quiz else None,
            badges_unlocked=unlocked,
        )

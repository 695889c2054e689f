"""
=====================================================
ECOCLEAN GAMIFICATION ENGINE
=====================================================
Responsibilities:
1. Points awards
2. Level derivation
3. Badge unlocks

Pure functions over user records (plain dicts as stored in the
ledger). Nothing here touches storage: every function returns a new
record and leaves its input untouched.
=====================================================
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from ecoclean.errors import InvalidInput

POINTS_PER_LEVEL = 500

REPORT_POINTS = {
    "small": 10,
    "medium": 20,
    "large": 30,
}

QUIZ_POINTS_PER_CORRECT = 10


# =====================================================
# EVENTS
# =====================================================

@dataclass(frozen=True)
class GamificationEvent:
    kind: str
    perfect_quiz: bool = False


REPORT_SUBMITTED = GamificationEvent("report_submitted")
QUIZ_SCORED = GamificationEvent("quiz_scored")
PERFECT_QUIZ = GamificationEvent("quiz_scored", perfect_quiz=True)


def quiz_event(score: int, total_questions: int) -> GamificationEvent:
    # An empty quiz is never perfect.
    if total_questions > 0 and score == total_questions:
        return PERFECT_QUIZ
    return QUIZ_SCORED


# =====================================================
# BADGES
# =====================================================

@dataclass(frozen=True)
class BadgeRule:
    badge_id: str
    name: str
    bonus: int
    predicate: Callable[[Dict[str, Any], GamificationEvent], bool]


# Count thresholds use exact equality and only fire on a report event: they
# trigger on the increment that lands on the value, so callers must check
# after every increment.
def _reports_reached(count: int):
    return lambda stats, event: event.kind == "report_submitted" and stats.get("reportsCount", 0) == count


BADGE_RULES: Tuple[BadgeRule, ...] = (
    BadgeRule("first_ten", "First Ten", 50, _reports_reached(10)),
    BadgeRule("clean_champion", "Clean Champion", 100, _reports_reached(50)),
    BadgeRule("perfect_score", "Perfect Score", 50, lambda stats, event: event.perfect_quiz),
)

BADGES_BY_ID = {rule.badge_id: rule for rule in BADGE_RULES}


# =====================================================
# USERS
# =====================================================

def level_for_points(points: int) -> int:
    return int(points) // POINTS_PER_LEVEL + 1


def new_user(user_id: str, email: str, name: str, joined_at: str) -> Dict[str, Any]:
    return {
        "id": user_id,
        "email": email,
        "name": name,
        "points": 0,
        "level": 1,
        "reportsCount": 0,
        "badges": [],
        "joinedAt": joined_at,
    }


def award_points(user: Dict[str, Any], amount: int) -> Dict[str, Any]:
    if amount < 0:
        raise InvalidInput("Points awarded must be non-negative")
    out = dict(user)
    out["points"] = int(user.get("points", 0)) + int(amount)
    out["level"] = level_for_points(out["points"])
    return out


def record_report(user: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(user)
    out["reportsCount"] = int(user.get("reportsCount", 0)) + 1
    return out


def newly_unlocked(stats: Dict[str, Any], event: GamificationEvent) -> List[str]:
    """Badge ids whose predicate holds for ``stats`` and which are not held yet."""
    held = set(stats.get("badges") or [])
    return [rule.badge_id for rule in BADGE_RULES if rule.badge_id not in held and rule.predicate(stats, event)]


def check_badge_unlocks(user: Dict[str, Any], event: GamificationEvent) -> Tuple[Dict[str, Any], List[str]]:
    unlocked = newly_unlocked(user, event)
    if not unlocked:
        return user, []
    out = dict(user)
    out["badges"] = list(user.get("badges") or []) + unlocked
    for badge_id in unlocked:
        out = award_points(out, BADGES_BY_ID[badge_id].bonus)
    return out, unlocked


def apply_report(user: Dict[str, Any], garbage_size: str) -> Tuple[Dict[str, Any], int, List[str]]:
    """Points, count and badges for one submitted report."""
    points = REPORT_POINTS[garbage_size]
    out = award_points(user, points)
    out = record_report(out)
    out, unlocked = check_badge_unlocks(out, REPORT_SUBMITTED)
    return out, points, unlocked


def apply_quiz(user: Dict[str, Any], score: int, total_questions: int) -> Tuple[Dict[str, Any], int, List[str]]:
    points = int(score) * QUIZ_POINTS_PER_CORRECT
    out = award_points(user, points)
    out, unlocked = check_badge_unlocks(out, quiz_event(score, total_questions))
    return out, points, unlocked

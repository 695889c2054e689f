"""Report ledger against the in-memory store: points, badges, ordering, partial failures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ecoclean.engines.gamification import award_points, new_user
from ecoclean.errors import InvalidInput, NotFound, StoreUnavailable
from ecoclean.services.reports import ReportLedger
from ecoclean.services.users import UserDirectory
from ecoclean.store import MemoryLedgerStore

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def ticking_clock(start=T0, step=timedelta(minutes=1)):
    state = {"now": start - step}

    def _clock():
        state["now"] += step
        return state["now"]

    return _clock


def make_ledger(store=None, clock=None, user_ids=("u1",), update_attempts=5):
    store = store if store is not None else MemoryLedgerStore()
    for uid in user_ids:
        store.set(f"user:{uid}", new_user(uid, f"{uid}@example.com", uid.upper(), T0.isoformat()))
    users = UserDirectory(store, identity=None, update_attempts=update_attempts)
    return ReportLedger(store, users, clock=clock or ticking_clock()), store


def payload(size="small", **extra):
    body = {
        "location": "Sector 12, Gate 1",
        "coordinates": {"lat": 28.5355, "lng": 77.3910},
        "garbageSize": size,
        "description": "Overflowing heap near the gate",
    }
    body.update(extra)
    return body


@pytest.mark.parametrize("size,points", [("small", 10), ("medium", 20), ("large", 30)])
def test_submit_report_awards_points_by_size(size, points):
    ledger, store = make_ledger()
    report, earned = ledger.submit_report("u1", payload(size))

    assert earned == points
    assert report["pointsEarned"] == points
    assert report["status"] == "pending"
    assert report["userId"] == "u1"
    assert store.get(f"report:{report['id']}") == report

    user = store.get("user:u1")
    assert user["points"] == points
    assert user["reportsCount"] == 1


def test_report_carries_priority_and_cleanup_estimate():
    ledger, _ = make_ledger()
    report, _ = ledger.submit_report("u1", payload("large", photo="blob://photo-1"))
    assert report["priority"] == "high"
    assert report["estimatedCleanupTime"] == 2
    assert report["upvotes"] == 0
    assert report["assignedTo"] is None
    assert report["photo"] == "blob://photo-1"


def test_report_optional_fields_may_be_missing():
    ledger, _ = make_ledger()
    report, _ = ledger.submit_report("u1", {"coordinates": {"lat": 0, "lng": 0}, "garbageSize": "medium"})
    assert report["description"] is None
    assert report["photo"] is None
    assert report["coordinates"] == {"lat": 0.0, "lng": 0.0}


@pytest.mark.parametrize(
    "body",
    [
        payload("huge"),
        payload(None),
        {"garbageSize": "small"},
        payload(coordinates={"lat": 28.5}),
        payload(coordinates={"lat": "28.5", "lng": 77.3}),
        payload(coordinates={"lat": float("nan"), "lng": 77.3}),
        payload(coordinates={"lat": 28.5, "lng": float("inf")}),
        payload(coordinates={"lat": True, "lng": 77.3}),
        payload(coordinates=[28.5, 77.3]),
    ],
)
def test_invalid_payload_is_rejected_without_writes(body):
    ledger, store = make_ledger()
    before = store.keys()
    with pytest.raises(InvalidInput):
        ledger.submit_report("u1", body)
    assert store.keys() == before
    assert store.get("user:u1")["points"] == 0


def test_unknown_user_is_rejected_before_any_write():
    ledger, store = make_ledger()
    with pytest.raises(NotFound):
        ledger.submit_report("ghost", payload())
    assert store.get_by_prefix("report:") == []


def test_end_to_end_first_ten_scenario():
    ledger, store = make_ledger()

    _, earned = ledger.submit_report("u1", payload("large"))
    assert earned == 30
    user = store.get("user:u1")
    assert (user["points"], user["level"], user["reportsCount"]) == (30, 1, 1)

    for _ in range(9):
        _, earned = ledger.submit_report("u1", payload("small"))
        # Badge bonus is never part of the returned points.
        assert earned == 10

    user = store.get("user:u1")
    assert user["reportsCount"] == 10
    assert user["points"] == 30 + 9 * 10 + 50
    assert user["badges"] == ["first_ten"]
    assert user["level"] == 1

    ledger.submit_report("u1", payload("small"))
    user = store.get("user:u1")
    assert user["points"] == 180
    assert user["badges"] == ["first_ten"]


def test_clean_champion_after_fifty_reports():
    ledger, store = make_ledger()
    for _ in range(50):
        ledger.submit_report("u1", payload("small"))
    user = store.get("user:u1")
    assert user["badges"] == ["first_ten", "clean_champion"]
    assert user["points"] == 50 * 10 + 50 + 100
    assert user["level"] == 2


def test_report_ids_are_unique_with_a_frozen_clock():
    ledger, _ = make_ledger(clock=lambda: T0)
    ids = {ledger.submit_report("u1", payload())[0]["id"] for _ in range(25)}
    assert len(ids) == 25


def test_get_user_reports_filters_and_sorts_newest_first():
    ledger, _ = make_ledger(user_ids=("u1", "u2"))
    mine = [ledger.submit_report("u1", payload())[0] for _ in range(3)]
    ledger.submit_report("u2", payload())

    reports = ledger.get_user_reports("u1")
    assert [r["id"] for r in reports] == [r["id"] for r in reversed(mine)]
    assert all(r["userId"] == "u1" for r in reports)
    assert ledger.get_user_reports("nobody") == []


def test_get_user_reports_orders_by_submitted_at_not_key():
    ledger, store = make_ledger()
    older, newer = (ledger.submit_report("u1", payload())[0] for _ in range(2))
    # The last key in store order carries the oldest timestamp.
    backdated = dict(older, id="report-9999999999999-zzz", submittedAt=(T0 - timedelta(days=1)).isoformat())
    store.set(f"report:{backdated['id']}", backdated)

    reports = ledger.get_user_reports("u1")
    assert [r["id"] for r in reports] == [newer["id"], older["id"], backdated["id"]]


def test_get_active_spots_excludes_resolved():
    ledger, store = make_ledger()
    a, _ = ledger.submit_report("u1", payload())
    b, _ = ledger.submit_report("u1", payload())
    c, _ = ledger.submit_report("u1", payload())
    store.set(f"report:{b['id']}", dict(b, status="in_progress"))
    store.set(f"report:{c['id']}", dict(c, status="resolved"))

    spots = {r["id"] for r in ledger.get_active_spots()}
    assert spots == {a["id"], b["id"]}


class ConcurrentWriterStore(MemoryLedgerStore):
    """Lets another writer bump ``user:*`` right before our next compare-and-set."""

    def __init__(self, conflicts=1):
        super().__init__()
        self.conflicts = conflicts

    def compare_and_set(self, key, value, expected_version):
        if key.startswith("user:") and self.conflicts:
            self.conflicts -= 1
            other = self.get(key)
            self.set(key, award_points(other, 5))
        return super().compare_and_set(key, value, expected_version)


def test_user_update_retries_after_a_concurrent_write():
    ledger, store = make_ledger(store=ConcurrentWriterStore(conflicts=1))
    ledger.submit_report("u1", payload("medium"))
    user = store.get("user:u1")
    # Neither the concurrent +5 nor our +20 is lost.
    assert user["points"] == 25
    assert user["reportsCount"] == 1


def test_report_is_kept_when_user_update_keeps_conflicting():
    ledger, store = make_ledger(store=ConcurrentWriterStore(conflicts=100), update_attempts=3)
    with pytest.raises(StoreUnavailable):
        ledger.submit_report("u1", payload("small"))
    assert len(store.get_by_prefix("report:")) == 1
    assert store.get("user:u1")["reportsCount"] == 0


class FailingUserWriteStore(MemoryLedgerStore):
    def compare_and_set(self, key, value, expected_version):
        if key.startswith("user:"):
            raise StoreUnavailable("user write failed")
        return super().compare_and_set(key, value, expected_version)


def test_report_is_kept_when_user_write_fails():
    ledger, store = make_ledger(store=FailingUserWriteStore())
    with pytest.raises(StoreUnavailable):
        ledger.submit_report("u1", payload("large"))
    assert len(store.get_by_prefix("report:")) == 1
    user = store.get("user:u1")
    assert user["points"] == 0
    assert user["reportsCount"] == 0

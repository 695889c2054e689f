"""Ledger Store: namespaced key/value persistence for every entity.

Keys are plain strings such as ``user:<id>`` or ``report:<id>``; values are
JSON-like records. Every write bumps a per-key version so read-modify-write
callers can use ``compare_and_set`` instead of a blind ``set``.
"""
from __future__ import annotations

import copy
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ecoclean.errors import StoreUnavailable
from ecoclean.extensions import db
from ecoclean.models import LedgerEntry


class LedgerStore:
    """Contract every backing store implements."""

    def get(self, key: str) -> Optional[Any]:
        value, _ = self.get_versioned(key)
        return value

    def get_versioned(self, key: str) -> Tuple[Optional[Any], Optional[int]]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def get_by_prefix(self, prefix: str) -> List[Any]:
        raise NotImplementedError

    def compare_and_set(self, key: str, value: Any, expected_version: Optional[int]) -> bool:
        """Write ``value`` only if the stored version still equals ``expected_version``.

        ``expected_version=None`` means "only if the key does not exist yet".
        Returns False on a version mismatch; nothing is written then.
        """
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class MemoryLedgerStore(LedgerStore):
    def __init__(self):
        self._data: Dict[str, Tuple[Any, int]] = {}
        self._lock = threading.Lock()

    def get_versioned(self, key):
        with self._lock:
            row = self._data.get(key)
            if row is None:
                return None, None
            return copy.deepcopy(row[0]), row[1]

    def set(self, key, value):
        with self._lock:
            current = self._data.get(key)
            version = current[1] + 1 if current else 1
            self._data[key] = (copy.deepcopy(value), version)

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def get_by_prefix(self, prefix):
        with self._lock:
            return [copy.deepcopy(v) for k, (v, _) in sorted(self._data.items()) if k.startswith(prefix)]

    def compare_and_set(self, key, value, expected_version):
        with self._lock:
            current = self._data.get(key)
            current_version = current[1] if current else None
            if current_version != expected_version:
                return False
            self._data[key] = (copy.deepcopy(value), (current_version or 0) + 1)
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class SqlLedgerStore(LedgerStore):
    """Ledger Store on the ``kv_store`` table through Flask-SQLAlchemy.

    Must be used inside an application context.
    """

    def _fail(self, op: str, key: str, err: Exception):
        db.session.rollback()
        current_app.logger.error("Ledger store %s failed for %r: %s", op, key, err)
        raise StoreUnavailable(f"Ledger store {op} failed") from err

    def get_versioned(self, key):
        try:
            row = db.session.get(LedgerEntry, key)
        except SQLAlchemyError as e:
            self._fail("get", key, e)
        if row is None:
            return None, None
        return copy.deepcopy(row.value), int(row.version)

    def set(self, key, value):
        try:
            row = db.session.get(LedgerEntry, key)
            if row is None:
                row = LedgerEntry(key=key, value=copy.deepcopy(value), version=1)
                db.session.add(row)
            else:
                row.value = copy.deepcopy(value)
                row.version = int(row.version or 0) + 1
                row.updated_at = datetime.utcnow()
            db.session.commit()
        except SQLAlchemyError as e:
            self._fail("set", key, e)

    def delete(self, key):
        try:
            row = db.session.get(LedgerEntry, key)
            if row is not None:
                db.session.delete(row)
                db.session.commit()
        except SQLAlchemyError as e:
            self._fail("delete", key, e)

    def get_by_prefix(self, prefix):
        try:
            rows = (
                LedgerEntry.query
                .filter(LedgerEntry.key.startswith(prefix, autoescape=True))
                .order_by(LedgerEntry.key.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("get_by_prefix", prefix, e)
        return [copy.deepcopy(r.value) for r in rows]

    def compare_and_set(self, key, value, expected_version):
        try:
            if expected_version is None:
                if db.session.get(LedgerEntry, key) is not None:
                    return False
                db.session.add(LedgerEntry(key=key, value=copy.deepcopy(value), version=1))
                try:
                    db.session.commit()
                except IntegrityError:
                    db.session.rollback()
                    return False
                return True

            result = db.session.execute(
                update(LedgerEntry)
                .where(LedgerEntry.key == key, LedgerEntry.version == int(expected_version))
                .values(value=copy.deepcopy(value), version=int(expected_version) + 1, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            self._fail("compare_and_set", key, e)

    def ping(self):
        try:
            db.session.execute(db.select(LedgerEntry.key).limit(1))
            return True
        except SQLAlchemyError:
            db.session.rollback()
            return False


def with_store_retry(
    fn: Callable[[], Any],
    *,
    attempts: int = 3,
    base_seconds: float = 0.05,
    max_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Call ``fn`` retrying ``StoreUnavailable`` with exponential backoff and a cap."""
    attempts = max(int(attempts), 1)
    for n in range(attempts):
        try:
            return fn()
        except StoreUnavailable:
            if n + 1 >= attempts:
                raise
            delay = min(base_seconds * (2 ** n), max_seconds)
            sleep(delay)


class RetryingLedgerStore(LedgerStore):
    """Wraps reads of another store with ``with_store_retry``.

    Writes are passed through once: replaying a write whose commit outcome
    is unknown could apply an award twice.
    """

    def __init__(self, inner: LedgerStore, *, attempts: int = 3, base_seconds: float = 0.05, sleep=time.sleep):
        self.inner = inner
        self.attempts = attempts
        self.base_seconds = base_seconds
        self._sleep = sleep

    def _retry(self, fn):
        return with_store_retry(fn, attempts=self.attempts, base_seconds=self.base_seconds, sleep=self._sleep)

    def get_versioned(self, key):
        return self._retry(lambda: self.inner.get_versioned(key))

    def get_by_prefix(self, prefix):
        return self._retry(lambda: self.inner.get_by_prefix(prefix))

    def set(self, key, value):
        self.inner.set(key, value)

    def delete(self, key):
        self.inner.delete(key)

    def compare_and_set(self, key, value, expected_version):
        return self.inner.compare_and_set(key, value, expected_version)

    def ping(self):
        return self.inner.ping()


def build_store(backend: str) -> LedgerStore:
    if backend == "memory":
        return MemoryLedgerStore()
    if backend == "sql":
        return SqlLedgerStore()
    raise RuntimeError(f"Unknown LEDGER_BACKEND: {backend!r}")

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Tuple

from ecoclean.engines.gamification import new_user
from ecoclean.errors import InvalidInput, NotFound, StoreUnavailable

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


class UserDirectory:
    def __init__(self, store, identity, *, update_attempts: int = 5, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.identity = identity
        self.update_attempts = max(int(update_attempts), 1)
        self.clock = clock

    def signup(self, email: Any, password: Any, name: Any) -> Dict[str, Any]:
        email = (email or "").strip() if isinstance(email, str) else ""
        name = (name or "").strip() if isinstance(name, str) else ""
        if not _EMAIL_RE.match(email):
            raise InvalidInput("A valid email is required")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        ident = self.identity.create_user(email, password, name)
        profile = new_user(ident.id, ident.email, name or ident.name, self.clock().isoformat())
        self.store.set(user_key(ident.id), profile)
        return ident.to_dict()

    def login(self, email: Any, password: Any) -> Dict[str, Any]:
        if not isinstance(email, str) or not email.strip() or not isinstance(password, str) or not password:
            raise InvalidInput("email and password required")
        token = self.identity.sign_in(email.strip(), password)
        ident = self.identity.verify_token(token)
        return {"token": token, "user": ident.to_dict() if ident else None}

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        profile = self.store.get(user_key(user_id))
        if not profile:
            raise NotFound("User profile not found")
        return profile

    def require(self, user_id: str) -> Tuple[Dict[str, Any], int]:
        profile, version = self.store.get_versioned(user_key(user_id))
        if not profile:
            raise NotFound("User profile not found")
        return profile, version

    def update(self, user_id: str, mutate: Callable[[Dict[str, Any]], Tuple[Dict[str, Any], Any]], *, current=None):
        """Read-modify-write ``user:<id>`` with compare-and-set.

        ``mutate`` gets the stored record and returns ``(new_record, result)``;
        it is re-run on the fresh record after every version conflict.
        Returns ``(new_record, result)`` from the attempt that was written.
        """
        key = user_key(user_id)
        for _ in range(self.update_attempts):
            if current is None:
                current = self.require(user_id)
            profile, version = current
            updated, result = mutate(profile)
            if self.store.compare_and_set(key, updated, version):
                return updated, result
            current = None
        raise StoreUnavailable(f"Could not update {key} after {self.update_attempts} attempts")

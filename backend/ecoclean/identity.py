"""Identity providers.

The core never stores sessions; it only needs to create accounts, exchange
credentials for a bearer token and turn a bearer token back into a user id.
``LocalIdentityProvider`` keeps credentials in the ledger and signs its own
JWTs. ``SupabaseIdentityProvider`` delegates all three calls to a hosted
GoTrue-compatible auth API.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests
from werkzeug.security import check_password_hash, generate_password_hash

from ecoclean.errors import IdentityProviderError, InvalidInput, Unauthenticated
from ecoclean.utils.jwt_utils import create_access_token, decode_token


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "user_metadata": {"name": self.name}}


class IdentityProvider:
    def create_user(self, email: str, password: str, name: str) -> Identity:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> str:
        raise NotImplementedError

    def verify_token(self, token: str) -> Optional[Identity]:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    def __init__(self, store, secret: str, ttl_seconds: int = 60 * 60 * 24 * 7):
        self.store = store
        self.secret = secret
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(email: str) -> str:
        return f"auth:{email.strip().lower()}"

    def create_user(self, email, password, name):
        record = {
            "id": str(uuid.uuid4()),
            "email": email.strip().lower(),
            "name": name,
            "passwordHash": generate_password_hash(password),
            "createdAt": datetime.utcnow().isoformat(),
        }
        if not self.store.compare_and_set(self._key(email), record, None):
            raise InvalidInput("A user with this email address has already been registered")
        return Identity(record["id"], record["email"], name)

    def sign_in(self, email, password):
        record = self.store.get(self._key(email))
        if not record or not check_password_hash(record.get("passwordHash", ""), password):
            raise Unauthenticated("Invalid login credentials")
        return create_access_token(
            record["id"],
            self.secret,
            self.ttl_seconds,
            claims={"email": record["email"], "name": record.get("name", "")},
        )

    def verify_token(self, token):
        payload = decode_token(token, self.secret)
        if not payload or payload.get("type") != "access" or not payload.get("sub"):
            return None
        return Identity(str(payload["sub"]), payload.get("email", ""), payload.get("name", ""))


def _error_message(resp) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"identity_error:{resp.status_code}"
    for field in ("msg", "error_description", "message", "error"):
        if data.get(field):
            return str(data[field])
    return f"identity_error:{resp.status_code}"


class SupabaseIdentityProvider(IdentityProvider):
    def __init__(self, url: str, service_key: str, anon_key: str = "", timeout: int = 10, http=requests):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.anon_key = anon_key or service_key
        self.timeout = timeout
        self.http = http

    def _identity(self, data: Dict[str, Any], fallback_name: str = "") -> Identity:
        meta = data.get("user_metadata") or {}
        return Identity(str(data["id"]), data.get("email") or "", meta.get("name") or fallback_name)

    def create_user(self, email, password, name):
        try:
            r = self.http.post(
                f"{self.url}/auth/v1/admin/users",
                json={
                    "email": email,
                    "password": password,
                    "user_metadata": {"name": name},
                    # No email server is configured, so accounts are confirmed up front.
                    "email_confirm": True,
                },
                headers={"apikey": self.service_key, "Authorization": f"Bearer {self.service_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError() from e
        if 200 <= r.status_code < 300:
            return self._identity(r.json(), name)
        if r.status_code >= 500:
            raise IdentityProviderError(_error_message(r))
        raise InvalidInput(_error_message(r))

    def sign_in(self, email, password):
        try:
            r = self.http.post(
                f"{self.url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers={"apikey": self.anon_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError() from e
        if r.status_code == 200:
            return r.json()["access_token"]
        if r.status_code >= 500:
            raise IdentityProviderError(_error_message(r))
        raise Unauthenticated("Invalid login credentials")

    def verify_token(self, token):
        try:
            r = self.http.get(
                f"{self.url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError() from e
        if r.status_code != 200:
            return None
        return self._identity(r.json())


def build_identity_provider(config, store) -> IdentityProvider:
    kind = config.get("IDENTITY_PROVIDER", "local")
    if kind == "local":
        return LocalIdentityProvider(store, config["SECRET_KEY"], config.get("ACCESS_TOKEN_TTL_SECONDS", 60 * 60 * 24 * 7))
    if kind == "supabase":
        return SupabaseIdentityProvider(
            config["SUPABASE_URL"],
            config["SUPABASE_SERVICE_ROLE_KEY"],
            config.get("SUPABASE_ANON_KEY", ""),
            timeout=config.get("IDENTITY_TIMEOUT_SECONDS", 10),
        )
    raise RuntimeError(f"Unknown IDENTITY_PROVIDER: {kind!r}")

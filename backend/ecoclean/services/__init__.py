"""Service container built once per app by ``create_app``."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ecoclean.identity import IdentityProvider, build_identity_provider
from ecoclean.services.bins import BinRegistry
from ecoclean.services.quiz import QuizScoring
from ecoclean.services.reports import ReportLedger
from ecoclean.services.trucks import TruckSchedule
from ecoclean.services.users import UserDirectory
from ecoclean.store import LedgerStore, RetryingLedgerStore, build_store

EXTENSION_KEY = "ecoclean"


@dataclass
class Services:
    store: LedgerStore
    identity: IdentityProvider
    users: UserDirectory
    reports: ReportLedger
    quiz: QuizScoring
    bins: BinRegistry
    trucks: TruckSchedule


def build_services(config, *, store: Optional[LedgerStore] = None, identity: Optional[IdentityProvider] = None,
                   rng: Optional[random.Random] = None) -> Services:
    if store is None:
        store = RetryingLedgerStore(
            build_store(config.get("LEDGER_BACKEND", "sql")),
            attempts=config.get("STORE_RETRY_ATTEMPTS", 3),
            base_seconds=config.get("STORE_RETRY_BASE_SECONDS", 0.05),
        )
    if identity is None:
        identity = build_identity_provider(config, store)
    users = UserDirectory(store, identity, update_attempts=config.get("USER_UPDATE_ATTEMPTS", 5))
    return Services(
        store=store,
        identity=identity,
        users=users,
        reports=ReportLedger(store, users),
        quiz=QuizScoring(store, users, rng=rng, sample_size=config.get("QUIZ_SAMPLE_SIZE", 3)),
        bins=BinRegistry(store),
        trucks=TruckSchedule(store),
    )


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]

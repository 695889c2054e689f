from .ledger_entry import LedgerEntry  # noqa: F401

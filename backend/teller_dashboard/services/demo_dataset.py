"""Read-only access to the static demo snapshot (accounts, balances, transactions)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _empty() -> dict[str, Any]:
    return {"accounts": [], "balances": {}, "transactions": {}}


def load_snapshot(path: Path | str) -> dict[str, Any]:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to read %s: %s", path, exc)
        return _empty()

    if not raw.strip():
        logger.warning("%s is empty, using an empty dataset", path)
        return _empty()

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", path, exc)
        return _empty()

    if not isinstance(parsed, dict):
        return _empty()

    accounts = parsed.get("accounts")
    balances = parsed.get("balances")
    transactions = parsed.get("transactions")
    return {
        "accounts": accounts if isinstance(accounts, list) else [],
        "balances": balances if isinstance(balances, dict) else {},
        "transactions": transactions if isinstance(transactions, dict) else {},
    }


class DemoDataset:
    def __init__(self, snapshot: dict[str, Any]):
        self._data = snapshot

    @classmethod
    def from_file(cls, path: Path | str) -> "DemoDataset":
        return cls(load_snapshot(path))

    def get_accounts(self) -> list[dict[str, Any]]:
        return self._data["accounts"]

    def get_account(self, account_id: str) -> dict[str, Any] | None:
        if not account_id:
            return None
        return next((a for a in self._data["accounts"] if a.get("id") == account_id), None)

    def get_balance(self, account_id: str) -> dict[str, Any] | None:
        if not account_id:
            return None

        entry = self._data["balances"].get(account_id)
        if not isinstance(entry, dict):
            return None

        balance = entry.get("balance")
        return {
            "account_id": entry.get("account_id") or account_id,
            "cached_at": entry.get("cached_at"),
            "balance": balance if isinstance(balance, dict) else {},
        }

    def get_transactions(self, account_id: str, limit: int | None = None) -> dict[str, Any] | None:
        if not account_id:
            return None

        entry = self._data["transactions"].get(account_id)
        if not isinstance(entry, dict):
            return None

        transactions = entry.get("transactions")
        items = list(transactions) if isinstance(transactions, list) else []
        if limit is not None and limit > 0:
            items = items[:limit]

        return {
            "account_id": entry.get("account_id") or account_id,
            "cached_at": entry.get("cached_at"),
            "transactions": items,
        }

"""Static demo dataset routes; mounted only when FEATURE_STATIC_DB is on."""

from __future__ import annotations

import math
from typing import Any

from fastapi import APIRouter, Depends, Query

from .errors import InvalidInputError, NotFoundError
from .stores import ManualStores, get_manual_stores

router = APIRouter(prefix="/api/db/accounts", tags=["demo"])

DEFAULT_TRANSACTION_LIMIT = 10


def parse_limit(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_TRANSACTION_LIMIT

    try:
        parsed = float(raw)
    except ValueError:
        parsed = math.nan

    if not math.isfinite(parsed) or parsed <= 0:
        raise InvalidInputError("limit must be a positive number")

    return max(math.floor(parsed), 1)


@router.get("")
async def list_accounts(stores: ManualStores = Depends(get_manual_stores)) -> dict[str, Any]:
    return {"accounts": stores.dataset.get_accounts()}


@router.get("/{account_id}/balances")
async def get_balances(account_id: str, stores: ManualStores = Depends(get_manual_stores)) -> dict[str, Any]:
    if stores.dataset.get_account(account_id) is None:
        raise NotFoundError("Account not found")

    balance = stores.dataset.get_balance(account_id)
    if balance is None:
        raise NotFoundError("Balance not found")
    return balance


@router.get("/{account_id}/transactions")
async def get_transactions(
    account_id: str,
    limit: str | None = Query(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    if stores.dataset.get_account(account_id) is None:
        raise NotFoundError("Account not found")

    transactions = stores.dataset.get_transactions(account_id, parse_limit(limit))
    if transactions is None:
        raise NotFoundError("Transactions not found")
    return transactions

"""Asset / liability / equity rollup for the dashboard summary card."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

from .slug_store import ASSET_SLUG

logger = logging.getLogger(__name__)

BalanceLookup = Callable[[str], "dict[str, Any] | None"]


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        # Teller serializes amounts as strings.
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None

    return number if number.is_finite() else None


def available_balance(entry: dict[str, Any] | None) -> Decimal:
    """Available balance from either `{available}` or `{balance: {available}}`."""
    if not isinstance(entry, dict):
        return Decimal("0")

    direct = _as_decimal(entry.get("available"))
    if direct is not None:
        return direct

    nested = entry.get("balance")
    if isinstance(nested, dict):
        value = _as_decimal(nested.get("available"))
        if value is not None:
            return value

    return Decimal("0")


def sum_account_balances(accounts: Iterable[dict[str, Any]], balance_lookup: BalanceLookup) -> Decimal:
    total = Decimal("0")
    for account in accounts:
        account_id = account.get("id")
        try:
            entry = balance_lookup(account_id)
        except Exception as exc:  # counted as zero
            logger.warning("Balance lookup failed for account %s: %s", account_id, exc)
            continue
        total += available_balance(entry)
    return total


def sum_liabilities(liabilities: dict[str, dict[str, Any]]) -> Decimal:
    total = Decimal("0")
    for liability in liabilities.values():
        value = _as_decimal((liability or {}).get("outstandingBalanceUsd"))
        if value is not None:
            total += value
    return total


def compute_totals(
    liabilities: dict[str, dict[str, Any]],
    asset: dict[str, Any],
    accounts: Iterable[dict[str, Any]],
    balance_lookup: BalanceLookup,
) -> dict[str, float]:
    manual_asset = _as_decimal(asset.get("valueUsd")) or Decimal("0")
    total_assets = sum_account_balances(accounts, balance_lookup) + manual_asset
    total_liabilities = sum_liabilities(liabilities)
    return {
        "totalAssets": float(total_assets),
        "totalLiabilities": float(total_liabilities),
        "totalEquity": float(total_assets - total_liabilities),
    }


def compute_summary(
    liabilities: dict[str, dict[str, Any]],
    asset: dict[str, Any],
    accounts: Iterable[dict[str, Any]],
    balance_lookup: BalanceLookup,
) -> dict[str, Any]:
    return {
        "manual": {
            "liabilities": liabilities,
            "assets": {
                ASSET_SLUG: {
                    "valueUsd": asset.get("valueUsd"),
                    "updatedAt": asset.get("updatedAt"),
                    "updatedBy": asset.get("updatedBy"),
                }
            },
        },
        "calculated": compute_totals(liabilities, asset, accounts, balance_lookup),
    }

"""Rent-roll store persisted to a single JSON file.

All writes go through one ``asyncio.Lock`` so the read-modify-write cycle of
one request never interleaves with another. Reads take the same lock, which
means a read issued after a write has been queued observes that write.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from .normalize import InvalidAmountError, ValidationError, quantize_money, to_decimal
from .timestamps import now_iso

logger = logging.getLogger(__name__)


def _placeholder(account_id: str, currency: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {"account_id": account_id, "rent_roll": None, "updated_at": None}
    if currency:
        payload["currency"] = currency
    return payload


class FileRentRollStore:
    def __init__(self, file_path: Path | str):
        self.file_path = Path(file_path)
        self._write_lock = asyncio.Lock()
        self._init_lock = asyncio.Lock()
        self._ready = False

    async def init(self) -> None:
        await self._ensure_storage()

    async def _ensure_storage(self) -> None:
        if self._ready:
            return

        async with self._init_lock:
            if self._ready:
                return
            await asyncio.to_thread(self._create_if_missing)
            self._ready = True

    def _create_if_missing(self) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.file_path.exists():
            self.file_path.write_text("{}\n", encoding="utf-8")

    def _load(self) -> dict[str, Any]:
        try:
            raw = self.file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to read manual data file %s: %s", self.file_path, exc)
            return {}

        return data if isinstance(data, dict) else {}

    def _dump(self, data: dict[str, Any]) -> None:
        tmp = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        tmp.replace(self.file_path)

    async def _read_all(self, *, skip_queue: bool = False) -> dict[str, Any]:
        await self._ensure_storage()
        if skip_queue:
            return await asyncio.to_thread(self._load)

        async with self._write_lock:
            return await asyncio.to_thread(self._load)

    async def _write_all(self, data: dict[str, Any]) -> None:
        await self._ensure_storage()
        await asyncio.to_thread(self._dump, data)

    @staticmethod
    def _format(account_id: str, record: dict[str, Any] | None, currency: str | None) -> dict[str, Any]:
        record = record or {}
        rent_roll = record.get("rent_roll")
        if isinstance(rent_roll, bool) or not isinstance(rent_roll, (int, float)):
            rent_roll = None

        updated_at = record.get("updated_at")
        if not isinstance(updated_at, str):
            updated_at = None

        stored_currency = record.get("currency")
        resolved_currency = currency or (stored_currency if isinstance(stored_currency, str) else None)

        payload: dict[str, Any] = {
            "account_id": account_id,
            "rent_roll": rent_roll,
            "updated_at": updated_at,
        }
        if resolved_currency:
            payload["currency"] = resolved_currency
        return payload

    async def get(self, account_id: str, currency: str | None = None) -> dict[str, Any]:
        data = await self._read_all()
        record = data.get(account_id)
        if not record:
            return _placeholder(account_id, currency)
        return self._format(account_id, record, currency)

    async def set(self, account_id: str, rent_roll: Any, currency: str | None = None) -> dict[str, Any]:
        try:
            number = to_decimal(rent_roll)
        except InvalidAmountError as exc:
            raise InvalidAmountError("rentRoll must be a finite number") from exc

        if number < 0:
            raise ValidationError("rent_roll must be non-negative")

        normalized = float(quantize_money(number))
        now = now_iso()

        async with self._write_lock:
            data = await self._read_all(skip_queue=True)
            record: dict[str, Any] = {"rent_roll": normalized, "updated_at": now}
            if currency:
                record["currency"] = currency
            data[account_id] = record
            await self._write_all(data)
            return self._format(account_id, record, currency)

    async def clear(self, account_id: str, currency: str | None = None) -> dict[str, Any]:
        async with self._write_lock:
            data = await self._read_all(skip_queue=True)
            if account_id in data:
                del data[account_id]
                await self._write_all(data)
        return _placeholder(account_id, currency)

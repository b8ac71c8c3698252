"""Construction and lifecycle of the manual-data stores.

The stores are built once at startup from settings, kept on
``app.state.stores`` and handed to routes through ``get_manual_stores``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi import Request

from .config import Settings
from .database import Database
from .services.demo_dataset import DemoDataset
from .services.manual_fields_store import ManualFieldsStore
from .services.rent_roll_file_store import FileRentRollStore
from .services.rent_roll_pg_store import PgRentRollStore
from .services.slug_store import MemorySlugStore, PgSlugStore
from .services.summary import compute_summary, compute_totals

logger = logging.getLogger(__name__)


class RentRollStore(Protocol):
    async def init(self) -> None: ...

    async def get(self, account_id: str, currency: str | None = None) -> dict[str, Any]: ...

    async def set(self, account_id: str, rent_roll: Any, currency: str | None = None) -> dict[str, Any]: ...

    async def clear(self, account_id: str, currency: str | None = None) -> dict[str, Any]: ...


@dataclass
class ManualStores:
    dataset: DemoDataset
    slugs: PgSlugStore | MemorySlugStore = field(default_factory=MemorySlugStore)
    rent_roll: RentRollStore | None = None
    fields: ManualFieldsStore | None = None
    database: Database | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ManualStores":
        stores = cls(dataset=DemoDataset.from_file(settings.static_db_path))
        if not settings.feature_manual_data:
            return stores

        backend = settings.manual_data_backend
        if backend == "auto":
            backend = "postgres" if settings.database_url else "none"

        if backend == "file":
            stores.rent_roll = FileRentRollStore(settings.manual_data_file)
            logger.info("Manual rent roll stored in %s", settings.manual_data_file)
            return stores

        if not settings.database_url:
            logger.warning(
                "FEATURE_MANUAL_DATA enabled but DATABASE_URL not set; routes will return defaults only."
            )
            return stores

        database = Database(
            settings.database_url,
            ssl=settings.pg_ssl,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
        stores.database = database
        stores.rent_roll = PgRentRollStore(database, settings.manual_data_table)
        stores.fields = ManualFieldsStore(database)
        stores.slugs = PgSlugStore(database)
        return stores

    async def init(self) -> None:
        if self.database is not None:
            await self.database.open()

        for name, store in (("rent roll", self.rent_roll), ("manual fields", self.fields), ("slug", self.slugs)):
            if store is None:
                continue
            await store.init()
            logger.info("Manual data %s store initialized", name)

    async def close(self) -> None:
        if self.database is not None:
            await self.database.close()
            logger.info("Manual data database pool closed")

    async def summary(self) -> dict[str, Any]:
        liabilities = await self.slugs.get_all_liabilities()
        asset = await self.slugs.get_asset_value()
        return compute_summary(liabilities, asset, self.dataset.get_accounts(), self.dataset.get_balance)

    async def health_totals(self) -> dict[str, Any]:
        """Compact summary for health checks; never raises."""
        try:
            liabilities = await self.slugs.get_all_liabilities()
            asset = await self.slugs.get_asset_value()
            totals = compute_totals(liabilities, asset, self.dataset.get_accounts(), self.dataset.get_balance)
        except Exception as exc:
            return {"ok": False, "error": str(exc)}
        return {"ok": True, "totals": totals}


def get_manual_stores(request: Request) -> ManualStores:
    return request.app.state.stores

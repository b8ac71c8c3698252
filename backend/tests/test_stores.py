import asyncio

import pytest
from pydantic import ValidationError

from teller_dashboard.config import DATA_DIR, Settings
from teller_dashboard.database import Database
from teller_dashboard.services.manual_fields_store import ManualFieldsStore
from teller_dashboard.services.rent_roll_file_store import FileRentRollStore
from teller_dashboard.services.rent_roll_pg_store import PgRentRollStore
from teller_dashboard.services.slug_store import MemorySlugStore, PgSlugStore
from teller_dashboard.stores import ManualStores


def _run(coro):
    return asyncio.run(coro)


def _settings(**overrides):
    return Settings(_env_file=None, static_db_path=DATA_DIR / "db.json", **overrides)


def test_disabled_feature_builds_no_persistent_stores() -> None:
    stores = ManualStores.from_settings(_settings(feature_manual_data=False, database_url="postgresql://x/y"))

    assert stores.rent_roll is None
    assert stores.fields is None
    assert stores.database is None
    assert isinstance(stores.slugs, MemorySlugStore)
    assert len(stores.dataset.get_accounts()) == 2


def test_file_backend(tmp_path) -> None:
    stores = ManualStores.from_settings(
        _settings(feature_manual_data=True, manual_data_backend="file", manual_data_file=tmp_path / "m.json")
    )

    assert isinstance(stores.rent_roll, FileRentRollStore)
    assert stores.database is None


def test_auto_without_database_url_serves_defaults() -> None:
    stores = ManualStores.from_settings(_settings(feature_manual_data=True, database_url=""))

    assert stores.rent_roll is None
    assert isinstance(stores.slugs, MemorySlugStore)


def test_postgres_stores_share_one_database() -> None:
    stores = ManualStores.from_settings(
        _settings(feature_manual_data=True, database_url="postgresql://user:pw@localhost:5432/app")
    )

    assert isinstance(stores.database, Database)
    assert isinstance(stores.rent_roll, PgRentRollStore)
    assert isinstance(stores.fields, ManualFieldsStore)
    assert isinstance(stores.slugs, PgSlugStore)
    assert stores.rent_roll.database is stores.fields.database is stores.slugs.database is stores.database


def test_lifecycle_opens_and_closes(fake_db, demo_dataset) -> None:
    stores = ManualStores(
        dataset=demo_dataset,
        rent_roll=PgRentRollStore(fake_db),
        fields=ManualFieldsStore(fake_db),
        slugs=PgSlugStore(fake_db),
        database=fake_db,
    )

    _run(stores.init())
    _run(stores.close())

    assert fake_db.opened and fake_db.closed
    assert "manual_data" not in fake_db.tables
    assert len(fake_db.tables["manual_liability"]) == 3


def test_health_totals_never_raise(demo_dataset) -> None:
    class BrokenSlugs(MemorySlugStore):
        async def get_all_liabilities(self):
            raise RuntimeError("db down")

    health = _run(ManualStores(dataset=demo_dataset, slugs=BrokenSlugs()).health_totals())

    assert health == {"ok": False, "error": "db down"}


def test_table_name_must_be_identifier() -> None:
    with pytest.raises(ValidationError):
        _settings(manual_data_table="manual_data; DROP TABLE accounts")


def test_backend_url_trailing_slash_is_stripped() -> None:
    assert _settings(backend_url="https://bank.example/").backend_url == "https://bank.example"

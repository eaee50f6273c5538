"""Fixtures for F5 tests - CLI and Web API."""

import asyncio

import pytest

from hujra.config.app_config import clear_config_cache
from hujra.core.ledger import reset_ledger
from hujra.core.models import STUDENTS, VISITS
from hujra.db.database import RecordStore


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the app config at a temporary database."""
    path = tmp_path / "hujra.db"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HUJRA_DB_PATH", str(path))
    clear_config_cache()
    reset_ledger()
    yield path
    reset_ledger()
    clear_config_cache()


@pytest.fixture
def read_db(db_path):
    """Read a collection back from the temporary database."""

    def _read(collection: str):
        async def main():
            store = RecordStore(db_path)
            try:
                return await store.get_all(collection)
            finally:
                await store.close()

        return asyncio.run(main())

    return _read


@pytest.fixture
def seed_db(db_path):
    """Write records straight into the temporary database."""

    def _seed(students=(), visits=()):
        async def main():
            store = RecordStore(db_path)
            try:
                await store.put_many(
                    [(STUDENTS, s) for s in students] + [(VISITS, v) for v in visits]
                )
            finally:
                await store.close()

        asyncio.run(main())

    return _seed

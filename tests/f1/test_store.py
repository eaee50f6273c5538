"""Tests for the SQLite record store (F1)."""

import sqlite3
from dataclasses import replace
from unittest.mock import patch

import pytest
import pytest_asyncio

from hujra.core.models import STUDENTS, VISITS
from hujra.db.database import RecordStore, StorageUnavailableError
from hujra.db.database import _write_row as real_write_row


class TestLifecycle:
    """Tests for open/close."""

    @pytest.mark.asyncio
    async def test_open_creates_database(self, tmp_path):
        db_path = tmp_path / "nested" / "hujra.db"
        store = RecordStore(db_path)
        await store.open()

        assert store.is_open
        assert db_path.exists()
        await store.close()
        assert not store.is_open

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self, store):
        await store.open()
        await store.open()
        assert await store.count(STUDENTS) == 0

    @pytest.mark.asyncio
    async def test_lazy_open_on_first_operation(self, tmp_path):
        store = RecordStore(tmp_path / "lazy.db")
        assert not store.is_open

        assert await store.get_all(STUDENTS) == []
        assert store.is_open
        await store.close()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path, ali):
        db_path = tmp_path / "hujra.db"
        first = RecordStore(db_path)
        await first.put(STUDENTS, ali)
        await first.close()

        second = RecordStore(db_path)
        assert await second.get(STUDENTS, ali.id) == ali
        await second.close()

    @pytest.mark.asyncio
    async def test_unopenable_path_raises_storage_unavailable(self, tmp_path):
        """A directory where the database file should be cannot be opened."""
        db_path = tmp_path / "hujra.db"
        db_path.mkdir()
        store = RecordStore(db_path)

        with pytest.raises(StorageUnavailableError):
            await store.open()
        await store.close()

    @pytest.mark.asyncio
    async def test_foreign_schema_version_refused(self, tmp_path):
        db_path = tmp_path / "old.db"
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE store_meta (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        conn.execute("INSERT INTO store_meta VALUES ('schema_version', '0')")
        conn.commit()
        conn.close()

        store = RecordStore(db_path)
        with pytest.raises(StorageUnavailableError, match="schema version"):
            await store.open()
        await store.close()


class TestPutGet:
    """Tests for put/get/get_all."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, store, ali):
        await store.put(STUDENTS, ali)
        assert await store.get(STUDENTS, ali.id) == ali

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get(STUDENTS, "nobody") is None

    @pytest.mark.asyncio
    async def test_put_replaces_by_id(self, store, ali):
        await store.put(STUDENTS, ali)
        await store.put(STUDENTS, replace(ali, phone="0770 000 0000"))

        assert await store.count(STUDENTS) == 1
        assert (await store.get(STUDENTS, ali.id)).phone == "0770 000 0000"

    @pytest.mark.asyncio
    async def test_students_ordered_by_creation(self, store, ali, omar):
        await store.put(STUDENTS, omar)
        await store.put(STUDENTS, ali)

        students = await store.get_all(STUDENTS)
        assert [s.id for s in students] == ["stu-ali", "stu-omar"]

    @pytest.mark.asyncio
    async def test_visits_newest_first(self, store, make_visit):
        await store.put(VISITS, make_visit("v1", "stu-ali", "2024-01-05"))
        await store.put(VISITS, make_visit("v2", "stu-ali", "2024-03-01"))
        await store.put(VISITS, make_visit("v3", "stu-ali", "2024-02-10"))

        visits = await store.get_all(VISITS)
        assert [v.id for v in visits] == ["v2", "v3", "v1"]

    @pytest.mark.asyncio
    async def test_wrong_record_type_rejected(self, store, ali):
        with pytest.raises(TypeError):
            await store.put(VISITS, ali)

    @pytest.mark.asyncio
    async def test_unknown_collection_rejected(self, store):
        with pytest.raises(ValueError):
            await store.get_all("teachers")

    @pytest.mark.asyncio
    async def test_record_without_id_rejected(self, store, ali):
        with pytest.raises(ValueError):
            await store.put(STUDENTS, replace(ali, id=""))

    @pytest.mark.asyncio
    async def test_put_many_spans_collections(self, store, ali, make_visit):
        visit = make_visit("v1", ali.id, "2024-01-05")
        await store.put_many([(VISITS, visit), (STUDENTS, ali)])

        assert await store.get(VISITS, "v1") == visit
        assert await store.get(STUDENTS, ali.id) == ali

    @pytest.mark.asyncio
    async def test_put_many_is_all_or_nothing(self, store, ali, make_visit):
        """An invalid item fails the batch before anything is written."""
        visit = make_visit("v1", ali.id, "2024-01-05")

        with pytest.raises(TypeError):
            await store.put_many([(VISITS, visit), (STUDENTS, visit)])

        assert await store.count(VISITS) == 0


class TestDelete:
    """Tests for delete and cascade delete."""

    @pytest.mark.asyncio
    async def test_delete_existing(self, store, ali):
        await store.put(STUDENTS, ali)
        assert await store.delete(STUDENTS, ali.id) is True
        assert await store.get(STUDENTS, ali.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, store):
        assert await store.delete(VISITS, "nothing") is False

    @pytest.mark.asyncio
    async def test_cascade_removes_only_that_students_visits(
        self, store, ali, omar, make_visit
    ):
        await store.put_many(
            [
                (STUDENTS, ali),
                (STUDENTS, omar),
                (VISITS, make_visit("v1", ali.id, "2024-01-05")),
                (VISITS, make_visit("v2", ali.id, "2024-02-05")),
                (VISITS, make_visit("v3", omar.id, "2024-02-06")),
            ]
        )

        removed = await store.delete_student_cascade(ali.id)

        assert removed == 2
        assert await store.get(STUDENTS, ali.id) is None
        remaining = await store.get_all(VISITS)
        assert [v.id for v in remaining] == ["v3"]
        assert await store.get(STUDENTS, omar.id) == omar

    @pytest.mark.asyncio
    async def test_cascade_unknown_student(self, store):
        assert await store.delete_student_cascade("ghost") == 0


class TestReplaceAll:
    """Tests for replace_all."""

    @pytest.mark.asyncio
    async def test_replace_all_discards_previous_records(
        self, store, ali, omar, make_visit
    ):
        await store.put_many([(STUDENTS, ali), (VISITS, make_visit("v1", ali.id, "2024-01-05"))])

        await store.replace_all([omar], [make_visit("v9", omar.id, "2024-05-01")])

        assert [s.id for s in await store.get_all(STUDENTS)] == [omar.id]
        assert [v.id for v in await store.get_all(VISITS)] == ["v9"]

    @pytest.mark.asyncio
    async def test_replace_all_with_nothing_empties_store(self, store, ali):
        await store.put(STUDENTS, ali)
        await store.replace_all([], [])
        assert await store.count(STUDENTS) == 0


def failing_writer(fail_at: int):
    """Row writer that raises on call number fail_at."""
    calls = []

    def writer(conn, collection, record):
        calls.append(record.id)
        if len(calls) == fail_at:
            raise RuntimeError("disk full")
        real_write_row(conn, collection, record)

    return writer


def add_trigger(db_path, sql: str) -> None:
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(sql)
        conn.commit()
    finally:
        conn.close()


class TestTransactionRollback:
    """A failure part-way through a transaction leaves the previous state."""

    @pytest_asyncio.fixture
    async def seeded(self, store, ali, omar, make_visit):
        await store.put_many(
            [
                (STUDENTS, ali),
                (STUDENTS, omar),
                (VISITS, make_visit("v1", ali.id, "2024-01-05")),
                (VISITS, make_visit("v2", omar.id, "2024-02-06")),
            ]
        )
        return store

    async def snapshot(self, store):
        return await store.get_all(STUDENTS), await store.get_all(VISITS)

    @pytest.mark.asyncio
    async def test_put_many_rolls_back_written_rows(self, seeded, ali, make_visit):
        before = await self.snapshot(seeded)
        edited = replace(ali, phone="0770")

        with patch("hujra.db.database._write_row", failing_writer(2)):
            with pytest.raises(RuntimeError, match="disk full"):
                await seeded.put_many(
                    [(STUDENTS, edited), (VISITS, make_visit("v3", ali.id, "2024-03-01"))]
                )

        assert await self.snapshot(seeded) == before
        assert (await seeded.get(STUDENTS, ali.id)).phone == ali.phone

    @pytest.mark.asyncio
    async def test_replace_all_rolls_back_deletes(self, seeded, omar, make_visit):
        before = await self.snapshot(seeded)

        with patch("hujra.db.database._write_row", failing_writer(2)):
            with pytest.raises(RuntimeError):
                await seeded.replace_all(
                    [replace(omar, phone="0770")], [make_visit("v9", omar.id, "2024-05-01")]
                )

        assert await self.snapshot(seeded) == before

    @pytest.mark.asyncio
    async def test_cascade_rolls_back_visit_deletion(self, seeded, ali):
        before = await self.snapshot(seeded)
        add_trigger(
            seeded.db_path,
            """
            CREATE TRIGGER block_student_delete BEFORE DELETE ON students
            BEGIN SELECT RAISE(ABORT, 'student delete blocked'); END
            """,
        )

        with pytest.raises(StorageUnavailableError, match="student delete blocked"):
            await seeded.delete_student_cascade(ali.id)

        assert await self.snapshot(seeded) == before

    @pytest.mark.asyncio
    async def test_store_usable_after_rollback(self, seeded, ali, make_visit):
        with patch("hujra.db.database._write_row", failing_writer(1)):
            with pytest.raises(RuntimeError):
                await seeded.put_many([(VISITS, make_visit("v3", ali.id, "2024-03-01"))])

        visit = make_visit("v3", ali.id, "2024-03-01")
        await seeded.put(VISITS, visit)
        assert await seeded.get(VISITS, "v3") == visit

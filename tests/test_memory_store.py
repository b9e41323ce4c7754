"""Tests for the in-memory counter store and account repository."""

import asyncio

import pytest

from registrar.core.errors import AccountNotFound, DuplicateEmail, DuplicateIdentifier
from registrar.core.models import Account
from registrar.store.memory import MemoryAccountRepository, MemoryCounterStore


def _account(email: str, identifier: str | None = None, role: str = "teacher") -> Account:
    return Account(name=email.split("@")[0], email=email, role=role, identifier=identifier)


class TestMemoryCounterStore:
    async def test_starts_at_one(self):
        store = MemoryCounterStore()
        assert await store.increment("ADM") == 1
        assert await store.increment("ADM") == 2

    async def test_keys_are_independent(self):
        store = MemoryCounterStore()
        assert await store.increment("ADM") == 1
        assert await store.increment("TCH") == 1

    async def test_initial_values(self):
        store = MemoryCounterStore({"TCH": 41})
        assert await store.increment("TCH") == 42

    async def test_concurrent_increments_never_repeat(self):
        store = MemoryCounterStore()
        values = await asyncio.gather(*(store.increment("STF") for _ in range(500)))
        assert sorted(values) == list(range(1, 501))


class TestMemoryAccountRepository:
    async def test_insert_assigns_id(self):
        repo = MemoryAccountRepository()
        stored = await repo.insert(_account("a@school.test", "TCH0001"))
        assert stored.id
        assert await repo.find_by_id(stored.id) == stored

    async def test_duplicate_identifier_rejected(self):
        repo = MemoryAccountRepository()
        await repo.insert(_account("a@school.test", "TCH0001"))
        with pytest.raises(DuplicateIdentifier) as exc_info:
            await repo.insert(_account("b@school.test", "TCH0001"))
        assert exc_info.value.identifier == "TCH0001"
        assert await repo.find_by_identifier("TCH0001") is not None
        assert len(await repo.list_missing_identifier()) == 0

    async def test_duplicate_email_rejected(self):
        repo = MemoryAccountRepository()
        await repo.insert(_account("a@school.test", "TCH0001"))
        with pytest.raises(DuplicateEmail):
            await repo.insert(_account("a@school.test", "TCH0002"))

    async def test_missing_identifier_in_insertion_order(self):
        repo = MemoryAccountRepository()
        first = await repo.insert(_account("a@school.test"))
        await repo.insert(_account("b@school.test", "TCH0001"))
        third = await repo.insert(_account("c@school.test"))
        missing = await repo.list_missing_identifier()
        assert [a.id for a in missing] == [first.id, third.id]

    async def test_set_identifier_only_once(self):
        repo = MemoryAccountRepository()
        stored = await repo.insert(_account("a@school.test"))
        await repo.set_identifier(stored.id, "TCH0001")
        with pytest.raises(AccountNotFound):
            await repo.set_identifier(stored.id, "TCH0002")
        assert (await repo.find_by_id(stored.id)).identifier == "TCH0001"

    async def test_set_identifier_rejects_taken(self):
        repo = MemoryAccountRepository()
        await repo.insert(_account("a@school.test", "TCH0001"))
        legacy = await repo.insert(_account("b@school.test"))
        with pytest.raises(DuplicateIdentifier):
            await repo.set_identifier(legacy.id, "TCH0001")

    async def test_set_availability(self):
        repo = MemoryAccountRepository()
        stored = await repo.insert(_account("a@school.test", "TCH0001"))
        updated = await repo.set_availability(stored.id, False)
        assert updated.is_available is False
        with pytest.raises(AccountNotFound):
            await repo.set_availability("missing", True)

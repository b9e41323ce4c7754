"""Tests for account creation with identifier allocation."""

from __future__ import annotations

import asyncio

import pytest

from registrar.accounts import AccountService
from registrar.core.errors import (
    AccountNotFound,
    DuplicateEmail,
    DuplicateIdentifier,
    StorageUnavailable,
)
from registrar.core.ids import IdentifierAllocator
from registrar.core.models import Account, AllocationConfig
from registrar.store.memory import MemoryAccountRepository, MemoryCounterStore


class UnavailableCounterStore:
    async def increment(self, prefix: str) -> int:
        raise StorageUnavailable("counter store unreachable")


def _service(counters=None, repo=None, **config) -> tuple[AccountService, MemoryAccountRepository]:
    repo = repo or MemoryAccountRepository()
    allocator = IdentifierAllocator(counters or MemoryCounterStore())
    return AccountService(repo, allocator, AllocationConfig(**config)), repo


def _account(email: str, role: str = "teacher", identifier: str | None = None) -> Account:
    return Account(name="Someone", email=email, role=role, identifier=identifier)


class TestCreateAccount:
    async def test_assigns_identifier(self):
        service, repo = _service()
        created = await service.create_account(_account("a@school.test"))
        assert created.identifier == "TCH0001"
        assert (await repo.find_by_id(created.id)).identifier == "TCH0001"

    async def test_sequential_accounts(self):
        service, _ = _service()
        first = await service.create_account(_account("a@school.test"))
        second = await service.create_account(_account("b@school.test"))
        assert (first.identifier, second.identifier) == ("TCH0001", "TCH0002")

    async def test_existing_identifier_is_kept(self):
        counters = MemoryCounterStore()
        service, _ = _service(counters=counters)
        created = await service.create_account(_account("a@school.test", identifier="TCH0500"))
        assert created.identifier == "TCH0500"
        # counter untouched
        assert await counters.increment("TCH") == 1

    async def test_concurrent_creation_is_unique(self):
        service, repo = _service()
        created = await asyncio.gather(
            *(service.create_account(_account(f"t{i}@school.test")) for i in range(100))
        )
        identifiers = {a.identifier for a in created}
        assert len(identifiers) == 100
        assert await repo.list_missing_identifier() == []

    async def test_storage_unavailable_persists_nothing(self):
        service, repo = _service(counters=UnavailableCounterStore())
        with pytest.raises(StorageUnavailable):
            await service.create_account(_account("a@school.test"))
        assert await repo.list_missing_identifier() == []
        assert await repo.find_by_identifier("") is None

    async def test_duplicate_email(self):
        service, _ = _service()
        await service.create_account(_account("a@school.test"))
        with pytest.raises(DuplicateEmail):
            await service.create_account(_account("a@school.test"))


class TestDuplicateRetry:
    async def test_retries_once_with_fresh_identifier(self):
        repo = MemoryAccountRepository()
        # a legacy row already holds the next identifier the counter will hand out
        await repo.insert(_account("legacy@school.test", identifier="TCH0001"))
        service, _ = _service(repo=repo)

        created = await service.create_account(_account("a@school.test"))
        assert created.identifier == "TCH0002"

    async def test_gives_up_after_second_duplicate(self):
        repo = MemoryAccountRepository()
        await repo.insert(_account("l1@school.test", identifier="TCH0001"))
        await repo.insert(_account("l2@school.test", identifier="TCH0002"))
        service, _ = _service(repo=repo)

        with pytest.raises(DuplicateIdentifier) as exc_info:
            await service.create_account(_account("a@school.test"))
        assert exc_info.value.identifier == "TCH0002"
        assert await repo.find_by_identifier("TCH0003") is None

    async def test_no_retry_when_disabled(self):
        repo = MemoryAccountRepository()
        await repo.insert(_account("l1@school.test", identifier="TCH0001"))
        service, _ = _service(repo=repo, duplicate_retries=0)
        with pytest.raises(DuplicateIdentifier):
            await service.create_account(_account("a@school.test"))


class TestChairman:
    async def test_first_chairman_gets_chm1(self):
        service, _ = _service()
        created = await service.create_account(_account("c@school.test", role="Chairman"))
        assert created.identifier == "CHM1"

    async def test_second_chairman_rejected(self):
        service, repo = _service()
        await service.create_account(_account("c1@school.test", role="chairman"))
        with pytest.raises(DuplicateIdentifier, match="chairman account already exists"):
            await service.create_account(_account("c2@school.test", role="chairman"))
        assert (await repo.find_by_identifier("CHM1")).email == "c1@school.test"


class TestLookups:
    async def test_get_account(self):
        service, _ = _service()
        created = await service.create_account(_account("a@school.test"))
        assert (await service.get_account(created.id)).email == "a@school.test"
        with pytest.raises(AccountNotFound):
            await service.get_account("nope")

    async def test_find_by_identifier(self):
        service, _ = _service()
        created = await service.create_account(_account("a@school.test", role="warden"))
        found = await service.find_by_identifier("WRD0001")
        assert found.id == created.id

    async def test_set_availability(self):
        service, _ = _service()
        created = await service.create_account(_account("a@school.test"))
        assert (await service.set_availability(created.id, False)).is_available is False

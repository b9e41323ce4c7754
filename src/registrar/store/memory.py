"""In-memory stores for development and tests.

Single-process only: atomicity comes from an ``anyio.Lock`` held across the
whole read-increment-write of a counter.
"""

from __future__ import annotations

import logging
import secrets

import anyio

from registrar.core.errors import AccountNotFound, DuplicateEmail, DuplicateIdentifier
from registrar.core.models import Account

logger = logging.getLogger(__name__)


class MemoryCounterStore:
    def __init__(self, initial: dict[str, int] | None = None) -> None:
        self._counters: dict[str, int] = dict(initial or {})
        self._lock = anyio.Lock()

    async def increment(self, prefix: str) -> int:
        async with self._lock:
            value = self._counters.get(prefix, 0) + 1
            self._counters[prefix] = value
        return value


class MemoryAccountRepository:
    def __init__(self) -> None:
        self._accounts: list[Account] = []
        self._lock = anyio.Lock()

    async def insert(self, account: Account) -> Account:
        async with self._lock:
            for existing in self._accounts:
                if existing.email == account.email:
                    raise DuplicateEmail(account.email)
                if account.identifier and existing.identifier == account.identifier:
                    raise DuplicateIdentifier(account.identifier)
            stored = account.model_copy(update={"id": account.id or secrets.token_hex(12)})
            self._accounts.append(stored)
        logger.debug("Inserted account %s (%s)", stored.id, stored.identifier)
        return stored.model_copy()

    async def find_by_id(self, account_id: str) -> Account | None:
        for account in self._accounts:
            if account.id == account_id:
                return account.model_copy()
        return None

    async def find_by_identifier(self, identifier: str) -> Account | None:
        for account in self._accounts:
            if account.identifier == identifier:
                return account.model_copy()
        return None

    async def list_missing_identifier(self) -> list[Account]:
        return [a.model_copy() for a in self._accounts if not a.identifier]

    async def set_identifier(self, account_id: str, identifier: str) -> None:
        async with self._lock:
            target: Account | None = None
            for account in self._accounts:
                if account.identifier == identifier:
                    raise DuplicateIdentifier(identifier)
                if account.id == account_id and not account.identifier:
                    target = account
            if target is None:
                raise AccountNotFound(account_id)
            target.identifier = identifier

    async def set_availability(self, account_id: str, is_available: bool) -> Account:
        async with self._lock:
            for account in self._accounts:
                if account.id == account_id:
                    account.is_available = is_available
                    return account.model_copy()
        raise AccountNotFound(account_id)

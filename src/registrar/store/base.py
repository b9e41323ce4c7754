"""Storage protocols for counters and accounts."""

from __future__ import annotations

from typing import Protocol

from registrar.core.models import Account


class CounterStore(Protocol):
    """Per-prefix integer counters with one atomic operation.

    The only way to touch a counter is :meth:`increment`. Implementations must
    perform the read, add and write as a single indivisible step.
    """

    async def increment(self, prefix: str) -> int:
        """Add 1 to the counter for *prefix* and return the new value.

        A missing counter is created at 0 first, so the first call returns 1.
        Raises ``StorageUnavailable`` when the store cannot be reached.
        """
        ...


class AccountRepository(Protocol):
    """Account persistence with a uniqueness constraint on identifiers."""

    async def insert(self, account: Account) -> Account:
        """Persist a new account and return it with its storage id set.

        Raises ``DuplicateIdentifier`` or ``DuplicateEmail`` when a uniqueness
        constraint is violated; nothing is written in that case.
        """
        ...

    async def find_by_id(self, account_id: str) -> Account | None:
        ...

    async def find_by_identifier(self, identifier: str) -> Account | None:
        ...

    async def list_missing_identifier(self) -> list[Account]:
        """Return accounts without an identifier in insertion order."""
        ...

    async def set_identifier(self, account_id: str, identifier: str) -> None:
        """Assign *identifier* to an account that has none yet.

        Raises ``DuplicateIdentifier`` if another account holds it and
        ``AccountNotFound`` if no identifier-less account has *account_id*.
        """
        ...

    async def set_availability(self, account_id: str, is_available: bool) -> Account:
        ...

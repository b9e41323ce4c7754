"""Account creation with an explicit identifier-allocation step."""

from __future__ import annotations

import logging

from registrar.core.errors import AccountNotFound, DuplicateIdentifier, StorageUnavailable
from registrar.core.ids import IdentifierAllocator
from registrar.core.models import Account, AllocationConfig
from registrar.core.roles import is_chairman, normalize_role
from registrar.metrics import ACCOUNTS_CREATED, ALLOCATION_FAILURES
from registrar.store.base import AccountRepository

logger = logging.getLogger(__name__)


class AccountService:
    """Creates accounts, allocating an identifier right before persisting.

    Parameters
    ----------
    accounts:
        Repository enforcing identifier and e-mail uniqueness.
    allocator:
        Source of fresh identifiers.
    config:
        ``duplicate_retries`` bounds how often a ``DuplicateIdentifier`` at
        insert time is answered with a newly drawn identifier.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        allocator: IdentifierAllocator,
        config: AllocationConfig | None = None,
    ) -> None:
        self._accounts = accounts
        self._allocator = allocator
        self._config = config or AllocationConfig()

    async def create_account(self, account: Account) -> Account:
        """Persist *account* with an identifier and return the stored copy.

        An account that already carries an identifier keeps it. A second
        chairman is rejected with ``DuplicateIdentifier``.
        """
        if account.has_identifier:
            return await self._insert(account)

        if is_chairman(account.role):
            identifier = await self._allocator.allocate(account.role)
            try:
                return await self._insert(account.model_copy(update={"identifier": identifier}))
            except DuplicateIdentifier as exc:
                raise DuplicateIdentifier(
                    identifier, "A chairman account already exists"
                ) from exc

        retries = self._config.duplicate_retries
        while True:
            candidate = account.model_copy(update={
                "identifier": await self._allocator.allocate(account.role),
            })
            try:
                return await self._insert(candidate)
            except DuplicateIdentifier as exc:
                if retries <= 0:
                    raise
                retries -= 1
                logger.warning(
                    "Identifier %s already taken; drawing a new one for %s",
                    exc.identifier,
                    account.email,
                )

    async def get_account(self, account_id: str) -> Account:
        account = await self._accounts.find_by_id(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account

    async def find_by_identifier(self, identifier: str) -> Account | None:
        return await self._accounts.find_by_identifier(identifier)

    async def set_availability(self, account_id: str, is_available: bool) -> Account:
        return await self._accounts.set_availability(account_id, is_available)

    async def _insert(self, account: Account) -> Account:
        try:
            stored = await self._accounts.insert(account)
        except DuplicateIdentifier:
            ALLOCATION_FAILURES.labels(reason="duplicate").inc()
            raise
        except StorageUnavailable:
            ALLOCATION_FAILURES.labels(reason="storage").inc()
            raise
        ACCOUNTS_CREATED.labels(role=normalize_role(stored.role)).inc()
        logger.info("Created account %s with identifier %s", stored.id, stored.identifier)
        return stored

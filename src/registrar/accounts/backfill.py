"""One-time backfill of identifiers for accounts that predate allocation.

Accounts are visited in insertion order so repeated runs over the same data
produce the same assignments. Each candidate is re-checked against the
repository before it is written; a taken candidate is replaced by drawing the
counter again, up to ``max_attempts`` draws per account.
"""

from __future__ import annotations

import logging

from registrar.core.errors import BackfillExhausted, DuplicateIdentifier
from registrar.core.ids import IdentifierAllocator
from registrar.core.models import Account, Assignment, BackfillConfig, BackfillReport
from registrar.core.roles import is_chairman, prefix_for
from registrar.metrics import BACKFILL_ASSIGNED, BACKFILL_COLLISIONS
from registrar.store.base import AccountRepository

logger = logging.getLogger(__name__)


class Backfill:
    def __init__(
        self,
        accounts: AccountRepository,
        allocator: IdentifierAllocator,
        config: BackfillConfig | None = None,
    ) -> None:
        self._accounts = accounts
        self._allocator = allocator
        self._config = config or BackfillConfig()

    async def run(self, dry_run: bool = False) -> BackfillReport:
        """Assign identifiers to every account that lacks one.

        With *dry_run* the pending accounts are only listed; no counter is
        advanced and nothing is written.
        """
        pending = await self._accounts.list_missing_identifier()
        report = BackfillReport(scanned=len(pending), dry_run=dry_run)
        logger.info("Backfill found %d account(s) without an identifier", len(pending))

        if dry_run:
            report.pending = [a.id for a in pending]
            return report

        for account in pending:
            identifier = await self._assign(account, report)
            report.assigned.append(Assignment(account_id=account.id, identifier=identifier))
            BACKFILL_ASSIGNED.labels(prefix=prefix_for(account.role)).inc()
            logger.info("Assigned %s to %s", identifier, account.id)

        logger.info("Backfill complete: %d assigned", len(report.assigned))
        return report

    async def _assign(self, account: Account, report: BackfillReport) -> str:
        """Write a free identifier to *account* and return it."""
        if is_chairman(account.role):
            identifier = await self._allocator.allocate(account.role)
            if await self._accounts.find_by_identifier(identifier) is not None:
                raise DuplicateIdentifier(
                    identifier,
                    f"Account {account.id} is a second chairman; {identifier} is already assigned",
                )
            await self._accounts.set_identifier(account.id, identifier)
            return identifier

        max_attempts = self._config.max_attempts
        for _ in range(max_attempts):
            identifier = await self._allocator.allocate(account.role)
            if await self._accounts.find_by_identifier(identifier) is None:
                try:
                    await self._accounts.set_identifier(account.id, identifier)
                except DuplicateIdentifier:
                    # taken by live traffic after the check
                    pass
                else:
                    return identifier
            report.collisions += 1
            BACKFILL_COLLISIONS.inc()
            logger.warning("Candidate %s for %s is taken; drawing again", identifier, account.id)
        raise BackfillExhausted(prefix_for(account.role), max_attempts)

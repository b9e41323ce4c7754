"""Account creation and identifier backfill."""

from registrar.accounts.backfill import Backfill
from registrar.accounts.service import AccountService

__all__ = [
    "AccountService",
    "Backfill",
]

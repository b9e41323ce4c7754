"""Exceptions raised by registrar.

Every error reaching an account-creation caller derives from
:class:`RegistrarError`.
"""

from __future__ import annotations


class RegistrarError(RuntimeError):
    """Base class for registrar errors."""


class StorageUnavailable(RegistrarError):
    """The counter store or account repository could not be reached."""


class DuplicateIdentifier(RegistrarError):
    """An identifier is already held by another account."""

    def __init__(self, identifier: str, message: str | None = None) -> None:
        self.identifier = identifier
        super().__init__(message or f"Identifier {identifier!r} is already assigned")


class DuplicateEmail(RegistrarError):
    """An account with this e-mail address already exists."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"E-mail {email!r} is already registered")


class BackfillExhausted(RegistrarError):
    """Backfill could not find a free identifier within its retry bound."""

    def __init__(self, prefix: str, attempts: int) -> None:
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(
            f"No free {prefix} identifier after {attempts} attempts; backfill aborted"
        )


class AccountNotFound(RegistrarError):
    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id!r} not found")

"""JSON-file stores with atomic writes, backup rotation and corruption recovery.

Counters live in ``<data_dir>/state/counters.json`` as ``{prefix: seq}``;
accounts live in ``<data_dir>/state/accounts.json`` as a list in insertion
order. Each store serializes its read-modify-write cycles behind an
``anyio.Lock``, so a data directory must be owned by a single process.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any

import anyio
import anyio.to_thread
from pydantic import ValidationError

from registrar.core.errors import (
    AccountNotFound,
    DuplicateEmail,
    DuplicateIdentifier,
    StorageUnavailable,
)
from registrar.core.models import Account, Counter

logger = logging.getLogger(__name__)

_MAX_BACKUPS = 3

_MISSING = object()


class JsonFile:
    """One JSON document on disk, replaced atomically on every save."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Any | None:
        """Load the document, falling back to backups on missing/corrupt files."""
        candidates = [
            self._path,
            *(self._backup(i) for i in range(1, _MAX_BACKUPS + 1)),
        ]
        for candidate in candidates:
            data = await self._try_read_json(candidate)
            if data is not None:
                if candidate != self._path:
                    logger.warning("Recovered %s from backup %s", self._path.name, candidate.name)
                return data
        return None

    async def load_committed(self) -> Any | None:
        """Load the last completed save without skipping corrupt files.

        Only a missing primary falls back to ``.bak.1``: :meth:`save` moves the
        primary there right before replacing it, so after an interrupted save
        ``.bak.1`` holds the newest committed document. A file that exists but
        does not parse raises ``StorageUnavailable``.
        """
        for candidate in (self._path, self._backup(1)):
            data = await self._read_json(candidate)
            if data is not _MISSING:
                if candidate != self._path:
                    logger.warning("Recovered %s from backup %s", self._path.name, candidate.name)
                return data
        return None

    async def save(self, data: Any) -> None:
        def _write() -> None:
            path = self._path
            path.parent.mkdir(parents=True, exist_ok=True)

            # Rotate backups: .bak.3 is dropped, .bak.2 -> .bak.3, .bak.1 -> .bak.2, file -> .bak.1
            for i in range(_MAX_BACKUPS, 1, -1):
                src = self._backup(i - 1)
                if src.exists():
                    os.replace(src, self._backup(i))

            if path.exists():
                os.replace(path, self._backup(1))

            tmp_path = path.parent / f"{path.name}.tmp"
            content = json.dumps(data, indent=2, ensure_ascii=False)
            fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
            try:
                os.write(fd, content.encode("utf-8"))
                os.fsync(fd)
            finally:
                os.close(fd)

            os.replace(tmp_path, path)

        try:
            await anyio.to_thread.run_sync(_write)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write {self._path}: {exc}") from exc

    def _backup(self, i: int) -> Path:
        return self._path.parent / f"{self._path.name}.bak.{i}"

    @staticmethod
    async def _try_read_json(path: Path) -> Any | None:
        def _read() -> Any | None:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            try:
                return json.loads(raw)
            except (json.JSONDecodeError, ValueError):
                return None

        try:
            return await anyio.to_thread.run_sync(_read)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot read {path}: {exc}") from exc

    @staticmethod
    async def _read_json(path: Path) -> Any:
        def _read() -> Any:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return _MISSING
            return json.loads(raw)

        try:
            return await anyio.to_thread.run_sync(_read)
        except (json.JSONDecodeError, ValueError) as exc:
            raise StorageUnavailable(f"{path} is corrupt: {exc}") from exc
        except OSError as exc:
            raise StorageUnavailable(f"Cannot read {path}: {exc}") from exc


class JsonCounterStore:
    """Counters that never move backwards.

    A corrupt ``counters.json`` is reported as ``StorageUnavailable`` instead
    of being replaced by an older backup, which would re-issue numbers.
    """

    def __init__(self, data_dir: Path) -> None:
        self._file = JsonFile(data_dir / "state" / "counters.json")
        self._lock = anyio.Lock()

    async def increment(self, prefix: str) -> int:
        async with self._lock:
            counters = await self._load()
            counter = counters.get(prefix) or Counter(prefix=prefix)
            counter.seq += 1
            counters[prefix] = counter
            await self._file.save({c.prefix: c.seq for c in counters.values()})
        return counter.seq

    async def _load(self) -> dict[str, Counter]:
        data = await self._file.load_committed()
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageUnavailable(f"{self._file.path} does not hold a counter mapping")
        try:
            return {
                prefix: Counter(prefix=prefix, seq=seq) for prefix, seq in data.items()
            }
        except ValidationError as exc:
            raise StorageUnavailable(f"{self._file.path} holds invalid counters: {exc}") from exc


class JsonAccountRepository:
    def __init__(self, data_dir: Path) -> None:
        self._file = JsonFile(data_dir / "state" / "accounts.json")
        self._lock = anyio.Lock()

    # -- Public API ----------------------------------------------------------

    async def insert(self, account: Account) -> Account:
        async with self._lock:
            accounts = await self._load()
            for existing in accounts:
                if existing.email == account.email:
                    raise DuplicateEmail(account.email)
                if account.identifier and existing.identifier == account.identifier:
                    raise DuplicateIdentifier(account.identifier)
            stored = account.model_copy(update={"id": account.id or secrets.token_hex(12)})
            accounts.append(stored)
            await self._save(accounts)
        return stored

    async def find_by_id(self, account_id: str) -> Account | None:
        for account in await self._load():
            if account.id == account_id:
                return account
        return None

    async def find_by_identifier(self, identifier: str) -> Account | None:
        for account in await self._load():
            if account.identifier == identifier:
                return account
        return None

    async def list_missing_identifier(self) -> list[Account]:
        return [a for a in await self._load() if not a.identifier]

    async def set_identifier(self, account_id: str, identifier: str) -> None:
        async with self._lock:
            accounts = await self._load()
            target: Account | None = None
            for account in accounts:
                if account.identifier == identifier:
                    raise DuplicateIdentifier(identifier)
                if account.id == account_id and not account.identifier:
                    target = account
            if target is None:
                raise AccountNotFound(account_id)
            target.identifier = identifier
            await self._save(accounts)

    async def set_availability(self, account_id: str, is_available: bool) -> Account:
        async with self._lock:
            accounts = await self._load()
            for account in accounts:
                if account.id == account_id:
                    account.is_available = is_available
                    await self._save(accounts)
                    return account
        raise AccountNotFound(account_id)

    # -- Internals -----------------------------------------------------------

    async def _load(self) -> list[Account]:
        data = await self._file.load()
        if not isinstance(data, list):
            return []
        return [Account.model_validate(item) for item in data]

    async def _save(self, accounts: list[Account]) -> None:
        await self._file.save([a.model_dump(mode="json") for a in accounts])

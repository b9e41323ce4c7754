"""Storage backends for counters and accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from registrar.core.models import StorageConfig
from registrar.store.base import AccountRepository, CounterStore
from registrar.store.jsonfile import JsonAccountRepository, JsonCounterStore
from registrar.store.memory import MemoryAccountRepository, MemoryCounterStore

logger = logging.getLogger(__name__)

BACKENDS = ("json", "memory", "mongo")


@dataclass
class Stores:
    counters: CounterStore
    accounts: AccountRepository


async def open_stores(config: StorageConfig, base_dir: Path | None = None) -> Stores:
    """Build the counter store and account repository for *config*.

    ``data_dir`` is resolved against *base_dir* when it is relative.
    """
    backend = config.backend.lower()
    if backend == "memory":
        return Stores(counters=MemoryCounterStore(), accounts=MemoryAccountRepository())

    if backend == "json":
        data_dir = Path(config.data_dir)
        if base_dir is not None and not data_dir.is_absolute():
            data_dir = base_dir / data_dir
        logger.info("Using JSON storage at %s", data_dir)
        return Stores(
            counters=JsonCounterStore(data_dir),
            accounts=JsonAccountRepository(data_dir),
        )

    if backend == "mongo":
        from registrar.store.mongo import (
            MongoAccountRepository,
            MongoCounterStore,
            connect,
        )

        db = connect(config)
        accounts = MongoAccountRepository(db)
        await accounts.ensure_indexes()
        logger.info("Using MongoDB storage (database %s)", config.database)
        return Stores(counters=MongoCounterStore(db), accounts=accounts)

    msg = f"Unknown storage backend {config.backend!r}; expected one of {', '.join(BACKENDS)}"
    raise ValueError(msg)


__all__ = [
    "AccountRepository",
    "CounterStore",
    "JsonAccountRepository",
    "JsonCounterStore",
    "MemoryAccountRepository",
    "MemoryCounterStore",
    "Stores",
    "open_stores",
]

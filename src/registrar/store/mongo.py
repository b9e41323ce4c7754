"""MongoDB-backed stores using the motor async driver.

Counters are documents ``{_id: prefix, seq: n}`` in the ``counters``
collection, advanced with a single ``find_one_and_update`` using ``$inc`` and
``upsert``. Accounts live in ``users`` with a unique sparse index on
``uniqueId`` and a unique index on ``email``. Missing identifiers are stored
by omitting the field, so the sparse index ignores them.
"""

from __future__ import annotations

import logging
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from registrar.core.errors import (
    AccountNotFound,
    DuplicateEmail,
    DuplicateIdentifier,
    RegistrarError,
    StorageUnavailable,
)
from registrar.core.models import Account, StorageConfig

logger = logging.getLogger(__name__)

_MISSING_IDENTIFIER: dict[str, Any] = {
    "$or": [
        {"uniqueId": {"$exists": False}},
        {"uniqueId": None},
        {"uniqueId": ""},
    ]
}


def connect(config: StorageConfig) -> AsyncIOMotorDatabase:
    """Create a motor client for *config* and return its database handle."""
    client = AsyncIOMotorClient(
        config.mongo_uri,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
    )
    return client[config.database]


def _object_id(account_id: str) -> ObjectId | None:
    try:
        return ObjectId(account_id)
    except (InvalidId, TypeError):
        return None


def _to_document(account: Account) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "name": account.name,
        "email": account.email,
        "role": account.role,
        "status": account.status,
        "isAvailable": account.is_available,
        "createdAt": account.created_at,
    }
    if account.identifier:
        doc["uniqueId"] = account.identifier
    return doc


def _from_document(doc: dict[str, Any]) -> Account:
    data: dict[str, Any] = {
        "id": str(doc["_id"]),
        "name": doc.get("name", ""),
        "email": doc.get("email", ""),
        "role": doc.get("role") or "user",
        "status": doc.get("status", "pending"),
        "is_available": doc.get("isAvailable", True),
        "identifier": doc.get("uniqueId") or None,
    }
    if doc.get("createdAt") is not None:
        data["created_at"] = doc["createdAt"]
    return Account.model_validate(data)


def _duplicate_error(exc: DuplicateKeyError, account: Account | None, identifier: str | None) -> Exception:
    details = exc.details or {}
    key_pattern = details.get("keyPattern") or {}
    if "email" in key_pattern and account is not None:
        return DuplicateEmail(account.email)
    return DuplicateIdentifier(identifier or (account.identifier if account else "") or "")


class MongoCounterStore:
    def __init__(self, db: AsyncIOMotorDatabase, collection: str = "counters") -> None:
        self._collection = db[collection]

    async def increment(self, prefix: str) -> int:
        # Two first-time upserts on one _id can race; the loser sees
        # DuplicateKeyError and succeeds as a plain $inc on the second try.
        try:
            return await self._find_and_increment(prefix)
        except DuplicateKeyError:
            logger.debug("Counter upsert for %s raced; retrying", prefix)
        try:
            return await self._find_and_increment(prefix)
        except DuplicateKeyError as exc:
            raise RegistrarError(f"Counter {prefix} upsert kept conflicting") from exc

    async def _find_and_increment(self, prefix: str) -> int:
        try:
            doc = await self._collection.find_one_and_update(
                {"_id": prefix},
                {"$inc": {"seq": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Counter store unreachable: {exc}") from exc
        return int(doc["seq"])


class MongoAccountRepository:
    def __init__(self, db: AsyncIOMotorDatabase, collection: str = "users") -> None:
        self._collection = db[collection]

    async def ensure_indexes(self) -> None:
        try:
            await self._collection.create_index(
                [("uniqueId", ASCENDING)], unique=True, sparse=True
            )
            await self._collection.create_index([("email", ASCENDING)], unique=True)
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Account repository unreachable: {exc}") from exc

    async def insert(self, account: Account) -> Account:
        doc = _to_document(account)
        try:
            result = await self._collection.insert_one(doc)
        except DuplicateKeyError as exc:
            raise _duplicate_error(exc, account, account.identifier) from exc
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Account repository unreachable: {exc}") from exc
        return account.model_copy(update={"id": str(result.inserted_id)})

    async def find_by_id(self, account_id: str) -> Account | None:
        oid = _object_id(account_id)
        if oid is None:
            return None
        doc = await self._find_one({"_id": oid})
        return _from_document(doc) if doc else None

    async def find_by_identifier(self, identifier: str) -> Account | None:
        doc = await self._find_one({"uniqueId": identifier})
        return _from_document(doc) if doc else None

    async def list_missing_identifier(self) -> list[Account]:
        try:
            cursor = self._collection.find(_MISSING_IDENTIFIER).sort("_id", ASCENDING)
            return [_from_document(doc) async for doc in cursor]
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Account repository unreachable: {exc}") from exc

    async def set_identifier(self, account_id: str, identifier: str) -> None:
        oid = _object_id(account_id)
        if oid is None:
            raise AccountNotFound(account_id)
        try:
            result = await self._collection.update_one(
                {"_id": oid, **_MISSING_IDENTIFIER},
                {"$set": {"uniqueId": identifier}},
            )
        except DuplicateKeyError as exc:
            raise _duplicate_error(exc, None, identifier) from exc
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Account repository unreachable: {exc}") from exc
        if result.matched_count == 0:
            raise AccountNotFound(account_id)

    async def set_availability(self, account_id: str, is_available: bool) -> Account:
        oid = _object_id(account_id)
        if oid is None:
            raise AccountNotFound(account_id)
        try:
            doc = await self._collection.find_one_and_update(
                {"_id": oid},
                {"$set": {"isAvailable": is_available}},
                return_document=ReturnDocument.AFTER,
            )
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Account repository unreachable: {exc}") from exc
        if doc is None:
            raise AccountNotFound(account_id)
        return _from_document(doc)

    async def _find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return await self._collection.find_one(query)
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"Account repository unreachable: {exc}") from exc

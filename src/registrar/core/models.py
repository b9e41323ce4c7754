"""Core domain models for registrar.

All domain objects are Pydantic BaseModel classes. Account identifiers are
role-prefixed and sequential (e.g. "TCH0001"), drawn from per-prefix counters.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class Role(StrEnum):
    chairman = "chairman"
    admin = "admin"
    teacher = "teacher"
    accountant = "accountant"
    librarian = "librarian"
    receptionist = "receptionist"
    transport = "transport"
    warden = "warden"
    staff = "staff"
    user = "user"


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(BaseModel):
    """Any system user: chairman, staff member, teacher or plain user.

    ``identifier`` stays ``None`` until allocation. Once set it never changes.
    """

    id: str = ""
    name: str
    email: str
    role: str = Role.user.value
    status: str = "pending"
    is_available: bool = True
    identifier: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_identifier(self) -> bool:
        return bool(self.identifier)


# ---------------------------------------------------------------------------
# Counter
# ---------------------------------------------------------------------------


class Counter(BaseModel):
    """Next-sequence state for one role prefix."""

    prefix: str
    seq: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------


class Assignment(BaseModel):
    """An identifier written to a legacy account during backfill."""

    account_id: str
    identifier: str


class BackfillReport(BaseModel):
    """Outcome of one backfill pass."""

    scanned: int = 0
    assigned: list[Assignment] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)
    collisions: int = 0
    dry_run: bool = False


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class StorageConfig(BaseModel):
    """Where counters and accounts live."""

    backend: str = "json"  # json | memory | mongo
    data_dir: str = ".registrar"
    mongo_uri: str = "mongodb://localhost:27017"
    database: str = "school"
    server_selection_timeout_ms: int = 5000


class AllocationConfig(BaseModel):
    duplicate_retries: int = Field(default=1, ge=0)


class BackfillConfig(BaseModel):
    max_attempts: int = Field(default=1000, ge=1)


class RegistrarConfig(BaseModel):
    """Top-level configuration, loaded from registrar.yaml."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    allocation: AllocationConfig = Field(default_factory=AllocationConfig)
    backfill: BackfillConfig = Field(default_factory=BackfillConfig)

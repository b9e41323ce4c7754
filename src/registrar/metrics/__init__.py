"""Prometheus metrics for registrar."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Allocation metrics
IDENTIFIERS_ALLOCATED = Counter(
    "registrar_identifiers_allocated_total", "Identifiers allocated", ["prefix"]
)
ALLOCATION_FAILURES = Counter(
    "registrar_allocation_failures_total", "Failed allocations or account creations", ["reason"]
)
ALLOCATION_DURATION = Histogram(
    "registrar_allocation_duration_seconds",
    "Time spent drawing one identifier",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5),
)

# Account metrics
ACCOUNTS_CREATED = Counter("registrar_accounts_created_total", "Accounts created", ["role"])

# Backfill metrics
BACKFILL_ASSIGNED = Counter(
    "registrar_backfill_assigned_total", "Identifiers assigned by backfill", ["prefix"]
)
BACKFILL_COLLISIONS = Counter(
    "registrar_backfill_collisions_total", "Candidate identifiers already in use during backfill"
)

__all__ = [
    "IDENTIFIERS_ALLOCATED",
    "ALLOCATION_FAILURES",
    "ALLOCATION_DURATION",
    "ACCOUNTS_CREATED",
    "BACKFILL_ASSIGNED",
    "BACKFILL_COLLISIONS",
]

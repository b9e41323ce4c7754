"""Role-prefixed, sequential identifier allocation.

Identifiers are formatted as "<PREFIX><seq>" where seq is zero-padded to at
least 4 digits and widens past 9999 (``TCH10000``). Sequence numbers come
from an atomic per-prefix counter; the chairman is a singleton and always
gets ``CHM1``.
"""

from __future__ import annotations

import logging
import time

from registrar.core.roles import CHAIRMAN_IDENTIFIER, is_chairman, prefix_for
from registrar.metrics import ALLOCATION_DURATION, ALLOCATION_FAILURES, IDENTIFIERS_ALLOCATED
from registrar.store.base import CounterStore

logger = logging.getLogger(__name__)

PAD_WIDTH = 4


def format_identifier(prefix: str, seq: int) -> str:
    """Example: format_identifier("ADM", 7) -> "ADM0007"."""
    return f"{prefix}{seq:0{PAD_WIDTH}d}"


class IdentifierAllocator:
    """Draws identifiers from a :class:`CounterStore`.

    Every non-chairman call consumes exactly one counter value, so two calls
    for the same prefix never return the same identifier. Values consumed by
    a caller that later fails are lost; gaps are harmless.
    """

    def __init__(self, counters: CounterStore) -> None:
        self._counters = counters

    async def allocate(self, role: str | None) -> str:
        """Return a fresh identifier for *role*.

        Raises ``StorageUnavailable`` if the counter store cannot be reached.
        """
        if is_chairman(role):
            return CHAIRMAN_IDENTIFIER

        prefix = prefix_for(role)
        started = time.perf_counter()
        try:
            seq = await self._counters.increment(prefix)
        except Exception:
            ALLOCATION_FAILURES.labels(reason="counter").inc()
            raise
        ALLOCATION_DURATION.observe(time.perf_counter() - started)
        IDENTIFIERS_ALLOCATED.labels(prefix=prefix).inc()

        identifier = format_identifier(prefix, seq)
        logger.debug("Allocated %s for role %r", identifier, role)
        return identifier

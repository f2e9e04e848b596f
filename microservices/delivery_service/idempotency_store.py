"""
In-memory idempotency store

Process-local reservations. Used when no durable backend is configured and
in tests; state is lost on restart.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .models import DeliveryJob, ReservationStatus

logger = logging.getLogger(__name__)


@dataclass
class _Reservation:
    status: ReservationStatus
    reserved_at: float
    job: Optional[DeliveryJob] = None


class InMemoryIdempotencyStore:
    """Implements IdempotencyStoreProtocol with a dict"""

    def __init__(self, pending_ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.pending_ttl_seconds = pending_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Reservation] = {}

    async def initialize(self) -> None:
        pass

    async def try_reserve(self, key: str) -> bool:
        # Check-and-set with no await in between: atomic on the event loop
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            if entry.status == ReservationStatus.COMMITTED:
                return False
            if now - entry.reserved_at < self.pending_ttl_seconds:
                return False
            logger.warning(f"Pending reservation for {key} expired, allowing a new booking attempt")

        self._entries[key] = _Reservation(status=ReservationStatus.PENDING, reserved_at=now)
        return True

    async def record(self, key: str, job: DeliveryJob) -> None:
        entry = self._entries.get(key)
        reserved_at = entry.reserved_at if entry else self._clock()
        self._entries[key] = _Reservation(
            status=ReservationStatus.COMMITTED,
            reserved_at=reserved_at,
            job=job,
        )

    async def release(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is not None and entry.status == ReservationStatus.PENDING:
            del self._entries[key]

    async def lookup(self, key: str) -> Optional[DeliveryJob]:
        entry = self._entries.get(key)
        if entry is None or entry.status != ReservationStatus.COMMITTED:
            return None
        return entry.job

    def status(self, key: str) -> Optional[ReservationStatus]:
        entry = self._entries.get(key)
        return entry.status if entry else None

    async def close(self) -> None:
        pass

"""
Delivery Job Repository

PostgreSQL-backed idempotency store using asyncpg.
Matches schema: delivery.delivery_jobs

Reservations survive restarts and are shared between replicas. The
check-and-set is a single INSERT ... ON CONFLICT statement, which also takes
over a pending row whose TTL has run out.
"""

import logging
from typing import Any, Dict, Optional

import asyncpg

from .models import DeliveryJob, ReservationStatus

logger = logging.getLogger(__name__)


class DeliveryJobRepository:
    """
    Implements IdempotencyStoreProtocol on PostgreSQL.

    Tables:
        - delivery.delivery_jobs: one row per idempotency key
    """

    def __init__(
        self,
        dsn: str,
        schema: str = "delivery",
        pending_ttl_seconds: int = 300,
        min_size: int = 1,
        max_size: int = 5,
    ):
        self.dsn = dsn
        self.schema = schema
        self.table = "delivery_jobs"
        self.pending_ttl_seconds = pending_ttl_seconds
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None

    @property
    def _qualified(self) -> str:
        return f'"{self.schema}".{self.table}'

    async def initialize(self) -> None:
        """Create the connection pool and the table if missing"""
        if self.pool is not None:
            return
        self.pool = await asyncpg.create_pool(dsn=self.dsn, min_size=self.min_size, max_size=self.max_size)
        async with self.pool.acquire() as conn:
            await conn.execute(f'CREATE SCHEMA IF NOT EXISTS "{self.schema}"')
            await conn.execute(f'''
                CREATE TABLE IF NOT EXISTS {self._qualified} (
                    idempotency_key TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    reserved_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                    order_id TEXT,
                    fulfillment_order_id TEXT,
                    delivery_id TEXT,
                    tracking_url TEXT,
                    tracking_number TEXT,
                    created_at TIMESTAMPTZ
                )
            ''')
        logger.info(f"DeliveryJobRepository initialized ({self._qualified})")

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise RuntimeError("DeliveryJobRepository not initialized")
        return self.pool

    async def try_reserve(self, key: str) -> bool:
        query = f'''
            INSERT INTO {self._qualified} (idempotency_key, status, reserved_at)
            VALUES ($1, $2, now())
            ON CONFLICT (idempotency_key) DO UPDATE
                SET reserved_at = now()
                WHERE {self.table}.status = $2
                  AND {self.table}.reserved_at < now() - make_interval(secs => $3)
            RETURNING idempotency_key
        '''
        try:
            async with self._require_pool().acquire() as conn:
                reserved = await conn.fetchval(
                    query, key, ReservationStatus.PENDING.value, float(self.pending_ttl_seconds)
                )
            return reserved is not None
        except Exception as e:
            logger.error(f"Failed to reserve {key}: {e}")
            raise

    async def record(self, key: str, job: DeliveryJob) -> None:
        query = f'''
            INSERT INTO {self._qualified} (
                idempotency_key, status, order_id, fulfillment_order_id,
                delivery_id, tracking_url, tracking_number, created_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            ON CONFLICT (idempotency_key) DO UPDATE SET
                status = EXCLUDED.status,
                order_id = EXCLUDED.order_id,
                fulfillment_order_id = EXCLUDED.fulfillment_order_id,
                delivery_id = EXCLUDED.delivery_id,
                tracking_url = EXCLUDED.tracking_url,
                tracking_number = EXCLUDED.tracking_number,
                created_at = EXCLUDED.created_at
        '''
        try:
            async with self._require_pool().acquire() as conn:
                await conn.execute(
                    query,
                    key,
                    ReservationStatus.COMMITTED.value,
                    job.order_id,
                    job.fulfillment_order_id,
                    job.delivery_id,
                    job.tracking_url,
                    job.tracking_number,
                    job.created_at,
                )
        except Exception as e:
            logger.error(f"Failed to record delivery job for {key}: {e}")
            raise

    async def release(self, key: str) -> None:
        query = f"DELETE FROM {self._qualified} WHERE idempotency_key = $1 AND status = $2"
        try:
            async with self._require_pool().acquire() as conn:
                await conn.execute(query, key, ReservationStatus.PENDING.value)
        except Exception as e:
            logger.error(f"Failed to release reservation {key}: {e}")
            raise

    async def lookup(self, key: str) -> Optional[DeliveryJob]:
        query = f"SELECT * FROM {self._qualified} WHERE idempotency_key = $1 AND status = $2"
        try:
            async with self._require_pool().acquire() as conn:
                row = await conn.fetchrow(query, key, ReservationStatus.COMMITTED.value)
            return self._to_job(dict(row)) if row else None
        except Exception as e:
            logger.error(f"Failed to look up delivery job {key}: {e}")
            raise

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    @staticmethod
    def _to_job(data: Dict[str, Any]) -> DeliveryJob:
        return DeliveryJob(
            key=data["idempotency_key"],
            order_id=data["order_id"],
            fulfillment_order_id=data.get("fulfillment_order_id"),
            delivery_id=data["delivery_id"],
            tracking_url=data.get("tracking_url"),
            tracking_number=data.get("tracking_number"),
            created_at=data["created_at"],
        )

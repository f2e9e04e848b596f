#!/usr/bin/env python3
"""Infrastructure configuration

Storage backing the idempotency store. The in-memory backend keeps
reservations for the lifetime of the process; the postgres backend keeps
them across restarts and replicas.
"""
import os
from dataclasses import dataclass
from typing import Optional


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class InfraConfig:
    """Infrastructure settings"""

    # ===========================================
    # Idempotency store
    # ===========================================
    idempotency_backend: str = "memory"
    pending_ttl_seconds: int = 300

    # ===========================================
    # PostgreSQL (native asyncpg - port 5432)
    # ===========================================
    postgres_dsn: Optional[str] = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_schema: str = "delivery"

    @property
    def dsn(self) -> str:
        if self.postgres_dsn:
            return self.postgres_dsn
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @classmethod
    def from_env(cls) -> 'InfraConfig':
        """Load infrastructure config from environment"""
        return cls(
            idempotency_backend=os.getenv("IDEMPOTENCY_BACKEND", "memory").lower(),
            pending_ttl_seconds=_int(os.getenv("IDEMPOTENCY_PENDING_TTL_SECONDS", "300"), 300),
            postgres_dsn=os.getenv("POSTGRES_DSN") or None,
            postgres_host=os.getenv("POSTGRES_HOST", "localhost"),
            postgres_port=_int(os.getenv("POSTGRES_PORT", "5432"), 5432),
            postgres_db=os.getenv("POSTGRES_DB", "postgres"),
            postgres_user=os.getenv("POSTGRES_USER", "postgres"),
            postgres_password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            postgres_schema=os.getenv("POSTGRES_SCHEMA", "delivery"),
        )

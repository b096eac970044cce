"""Runtime settings for idemgate deployments."""

from datetime import timedelta
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from idemgate.coordinator import OnPending, Policy
from idemgate.keystore import KeyStore, RedisKeyStore
from idemgate.ledger import Ledger, MemoryLedger, SQLAlchemyLedger

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class IdempotencySettings(BaseSettings):
    """Coordinator, storage and logging settings.

    Loaded from constructor arguments first, then IDEMGATE_* environment
    variables, then the defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDEMGATE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Coordination
    ttl_seconds: float = Field(default=600, gt=0, description="How long committed responses replay")
    pending_staleness_seconds: float = Field(
        default=30, gt=0, description="Age after which a pending claim is abandoned"
    )
    execution_timeout_seconds: float | None = Field(
        default=None, gt=0, description="Executor bound; defaults to the staleness threshold"
    )
    key_required: bool = Field(default=False, description="Reject writes without a key")
    key_store_ttl_seconds: float | None = Field(
        default=None, gt=0, description="Key store expiry; defaults to ttl_seconds"
    )
    on_pending: Literal["fail", "wait"] = Field(
        default="fail", description="Behaviour when an identical request is in flight"
    )
    pending_wait_seconds: float = Field(
        default=5, gt=0, description="Bound on waiting for an in-flight request"
    )
    scope: str | None = Field(default=None, description="Prefix folded into stored keys")

    # Storage
    database_url: str | None = Field(
        default=None, description="SQLAlchemy async URL; in-memory ledger when unset"
    )
    redis_url: str | None = Field(default=None, description="Redis URL; no key store when unset")

    # Sweep
    sweep_interval_seconds: float = Field(default=60, gt=0, description="Pause between sweeps")
    sweep_batch_size: int = Field(default=500, gt=0, description="Records purged per sweep")

    # Logging
    log_level: LogLevel = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(default="json", description="Log renderer")

    @model_validator(mode="after")
    def check_timeout(self) -> "IdempotencySettings":
        """Execution may not outlive the staleness threshold, nor a claim its ttl."""
        if self.ttl_seconds < self.pending_staleness_seconds:
            raise ValueError("ttl_seconds must not be shorter than pending_staleness_seconds")
        if (
            self.execution_timeout_seconds is not None
            and self.execution_timeout_seconds > self.pending_staleness_seconds
        ):
            raise ValueError("execution_timeout_seconds must not exceed pending_staleness_seconds")
        return self

    def to_policy(self) -> Policy:
        """Build the coordinator policy these settings describe."""
        return Policy(
            ttl=timedelta(seconds=self.ttl_seconds),
            pending_staleness=timedelta(seconds=self.pending_staleness_seconds),
            execution_timeout=(
                timedelta(seconds=self.execution_timeout_seconds)
                if self.execution_timeout_seconds is not None
                else None
            ),
            key_required=self.key_required,
            key_store_ttl=(
                timedelta(seconds=self.key_store_ttl_seconds)
                if self.key_store_ttl_seconds is not None
                else None
            ),
            on_pending=OnPending[self.on_pending.upper()],
            pending_wait_timeout=timedelta(seconds=self.pending_wait_seconds),
            scope=self.scope,
        )

    def create_ledger(self) -> Ledger:
        if self.database_url is None:
            return MemoryLedger()
        return SQLAlchemyLedger.from_url(self.database_url)

    def create_key_store(self) -> KeyStore | None:
        if self.redis_url is None:
            return None
        return RedisKeyStore.from_url(self.redis_url)


__all__ = ("IdempotencySettings", "LogLevel")

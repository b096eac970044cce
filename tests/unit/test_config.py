"""Unit tests for IdempotencySettings."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from idemgate import coordinator as C
from idemgate.config import IdempotencySettings
from idemgate.keystore import RedisKeyStore
from idemgate.ledger import MemoryLedger, SQLAlchemyLedger


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ("TTL_SECONDS", "ON_PENDING", "KEY_REQUIRED", "SCOPE", "DATABASE_URL", "REDIS_URL"):
        monkeypatch.delenv(f"IDEMGATE_{name}", raising=False)


class TestDefaults:
    def test_default_policy_matches_policy_defaults(self) -> None:
        assert IdempotencySettings().to_policy() == C.Policy()

    def test_default_storage_is_in_memory(self) -> None:
        settings = IdempotencySettings()

        assert isinstance(settings.create_ledger(), MemoryLedger)
        assert settings.create_key_store() is None


class TestEnvironment:
    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("IDEMGATE_TTL_SECONDS", "900")
        monkeypatch.setenv("IDEMGATE_ON_PENDING", "wait")
        monkeypatch.setenv("IDEMGATE_KEY_REQUIRED", "true")
        monkeypatch.setenv("IDEMGATE_SCOPE", "messages.send")

        policy = IdempotencySettings().to_policy()

        assert policy.ttl == timedelta(minutes=15)
        assert policy.on_pending is C.WAIT
        assert policy.key_required
        assert policy.scope_key("abc") == "messages.send:abc"

    def test_constructor_wins_over_env(self, monkeypatch) -> None:
        monkeypatch.setenv("IDEMGATE_TTL_SECONDS", "900")

        assert IdempotencySettings(ttl_seconds=60).to_policy().ttl == timedelta(minutes=1)


class TestValidation:
    def test_timeout_above_staleness_rejected(self) -> None:
        with pytest.raises(ValidationError):
            IdempotencySettings(pending_staleness_seconds=10, execution_timeout_seconds=20)

    def test_ttl_shorter_than_staleness_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("IDEMGATE_TTL_SECONDS", "5")

        with pytest.raises(ValidationError, match="ttl_seconds"):
            IdempotencySettings()

    def test_ttl_equal_to_staleness_is_allowed(self) -> None:
        policy = IdempotencySettings(ttl_seconds=30, pending_staleness_seconds=30).to_policy()

        assert policy.ttl == policy.pending_staleness == timedelta(seconds=30)

    def test_timeout_and_key_store_ttl_carried_over(self) -> None:
        policy = IdempotencySettings(
            execution_timeout_seconds=5,
            key_store_ttl_seconds=120,
        ).to_policy()

        assert policy.effective_execution_timeout == timedelta(seconds=5)
        assert policy.effective_key_store_ttl == timedelta(minutes=2)

    def test_unknown_on_pending_rejected(self) -> None:
        with pytest.raises(ValidationError):
            IdempotencySettings(on_pending="force")


class TestFactories:
    @pytest.mark.asyncio
    async def test_database_url_builds_sqlalchemy_ledger(self, tmp_path) -> None:
        settings = IdempotencySettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'idem.db'}")

        ledger = settings.create_ledger()

        assert isinstance(ledger, SQLAlchemyLedger)
        await ledger.dispose()

    def test_redis_url_builds_redis_key_store(self) -> None:
        settings = IdempotencySettings(redis_url="redis://localhost:6379/0")

        assert isinstance(settings.create_key_store(), RedisKeyStore)

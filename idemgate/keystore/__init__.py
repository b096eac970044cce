"""
Key store — disposable accelerator in front of the ledger.

    from idemgate import keystore as K

    store = K.MemoryKeyStore(max_size=10_000)
    store = K.RedisKeyStore.from_url("redis://localhost:6379/0")

Losing the key store never breaks correctness, only latency.
"""

from __future__ import annotations

from idemgate.keystore._types import KeyStore, CachedEntry, KeyStoreError
from idemgate.keystore._memory import MemoryKeyStore
from idemgate.keystore._redis import RedisKeyStore
from idemgate.keystore._ops import lookup, remember, forget

__all__ = (
    "KeyStore",
    "CachedEntry",
    "KeyStoreError",
    "MemoryKeyStore",
    "RedisKeyStore",
    "lookup",
    "remember",
    "forget",
)

"""
Key store operations — every call lifted into a Result.

The coordinator never lets a key store exception escape: lookups that fail
or hold undecodable bytes become `Error(KeyStoreError)` and are treated as a
miss.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta

from kungfu import LazyCoroResult
from combinators import lift as L

from idemgate.keystore._types import CachedEntry, KeyStore, KeyStoreError


def _error_for(store: KeyStore, action: str) -> Callable[[Exception], KeyStoreError]:
    def on_error(e: Exception) -> KeyStoreError:
        return KeyStoreError(store=store.name, message=f"{action} failed: {e}", cause=e)

    return on_error


# ═══════════════════════════════════════════════════════════════════════════════
# lookup() — read and decode
# ═══════════════════════════════════════════════════════════════════════════════


def lookup(store: KeyStore, key: str) -> LazyCoroResult[CachedEntry | None, KeyStoreError]:
    """
    Read a cached entry.

    Example:
        match await K.lookup(store, "send:abc123xyz"):
            case Ok(entry): ...
            case Error(err): ...  # degrade to the ledger
    """

    async def do_lookup() -> CachedEntry | None:
        raw = await store.get(key)
        if raw is None:
            return None
        return CachedEntry.from_bytes(raw)

    return L.catching_async(do_lookup, on_error=_error_for(store, "get"))


# ═══════════════════════════════════════════════════════════════════════════════
# remember() / forget() — best-effort writes
# ═══════════════════════════════════════════════════════════════════════════════


def remember(
    store: KeyStore, key: str, entry: CachedEntry, ttl: timedelta
) -> LazyCoroResult[None, KeyStoreError]:
    """Store an entry with expiry."""

    async def do_remember() -> None:
        await store.set(key, entry.to_bytes(), ttl)

    return L.catching_async(do_remember, on_error=_error_for(store, "set"))


def forget(store: KeyStore, key: str) -> LazyCoroResult[bool, KeyStoreError]:
    """Drop an entry. Returns True if it existed."""

    async def do_forget() -> bool:
        return await store.delete(key)

    return L.catching_async(do_forget, on_error=_error_for(store, "delete"))


__all__ = ("lookup", "remember", "forget")

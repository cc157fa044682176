"""Short-lived in-memory read cache.

``TTLCache`` maps string keys to ``(value, expires_at)`` pairs. It is an
ordinary object: callers create one and hand it to whatever needs it, so two
readers never share entries by accident. Expired entries are dropped lazily
on read, or in bulk by :meth:`TTLCache.cleanup`.

Invalidation is by exact key or by key prefix. Keys are namespaced with a
``"<collection>:"`` prefix so a write can drop every cached view of a
collection at once, e.g. ``cache.invalidate(prefixes=["transactions:"])``.

``CachedTransactionReader`` puts the cache in front of a store's
``list_records`` and the dashboard summary. Writes made through the reader
go straight to the store and then drop every cached ``transactions:`` view.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from .logging_setup import get_logger
from .models import (
    BudgetTransactionRecord,
    StoredTransaction,
    TransactionStatus,
    WorkflowStage,
)

_logger = get_logger("budget_monitoring.cache")

DEFAULT_TTL_SECONDS: float = 300.0
TRANSACTIONS_PREFIX = "transactions:"


def default_ttl_from_env() -> float:
    """Return ``BUDGET_MONITORING_CACHE_TTL`` seconds, else the 5 minute default."""

    raw = os.getenv("BUDGET_MONITORING_CACHE_TTL")
    if raw and raw.strip():
        try:
            return max(float(raw), 0.0)
        except ValueError:
            _logger.warning("cache:invalid_ttl value=%r; using %s", raw, DEFAULT_TTL_SECONDS)
    return DEFAULT_TTL_SECONDS


@dataclass(slots=True)
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl < 0:
            raise ValueError("default_ttl must be >= 0")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        self._entries[key] = _Entry(value, self._clock() + ttl)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate(self, keys: Iterable[str] = (), prefixes: Iterable[str] = ()) -> int:
        """Drop exact ``keys`` and every key starting with one of ``prefixes``.

        Returns how many entries were removed.
        """

        doomed = set(keys).intersection(self._entries)
        prefix_tuple = tuple(prefixes)
        if prefix_tuple:
            doomed.update(k for k in self._entries if k.startswith(prefix_tuple))
        for key in doomed:
            del self._entries[key]
        if doomed:
            _logger.debug("cache:invalidated count=%d", len(doomed))
        return len(doomed)

    def cleanup(self) -> int:
        """Evict every expired entry; returns the number evicted."""

        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        """Live (unexpired) keys."""

        now = self._clock()
        return [k for k, e in self._entries.items() if now < e.expires_at]

    def __len__(self) -> int:
        return len(self.keys())

    def get_or_load(self, key: str, loader: Callable[[], Any], ttl: float | None = None) -> Any:
        """Return the cached value for ``key``, calling ``loader`` on a miss."""

        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = loader()
            self.set(key, value, ttl)
        return value


# ----------------------------------------------------------------------------
# Cached reads
# ----------------------------------------------------------------------------


class RecordLister(Protocol):
    def list_records(
        self,
        *,
        stage: WorkflowStage | str | None = None,
        status: TransactionStatus | str | None = None,
        created_by: str | None = None,
    ) -> list[StoredTransaction]: ...


class RecordStore(RecordLister, Protocol):
    def create_record(self, record: BudgetTransactionRecord) -> str: ...

    def update_record(self, record_id: str, **fields: Any) -> StoredTransaction: ...


class CachedTransactionReader:
    def __init__(self, store: RecordStore, cache: TTLCache) -> None:
        self.store = store
        self.cache = cache

    def list_records(
        self,
        *,
        stage: WorkflowStage | str | None = None,
        status: TransactionStatus | str | None = None,
    ) -> list[StoredTransaction]:
        key = f"{TRANSACTIONS_PREFIX}list:{stage or '*'}:{status or '*'}"
        return self.cache.get_or_load(
            key, lambda: self.store.list_records(stage=stage, status=status)
        )

    def summary(self) -> dict[str, Any]:
        from .dashboard import build_summary

        return self.cache.get_or_load(
            f"{TRANSACTIONS_PREFIX}summary",
            lambda: build_summary(self.list_records()),
        )

    def invalidate_all(self) -> int:
        return self.cache.invalidate(prefixes=[TRANSACTIONS_PREFIX])

    def create_record(self, record: BudgetTransactionRecord) -> str:
        record_id = self.store.create_record(record)
        self.invalidate_all()
        return record_id

    def update_record(self, record_id: str, **fields: Any) -> StoredTransaction:
        updated = self.store.update_record(record_id, **fields)
        self.invalidate_all()
        return updated


__all__ = [
    "CachedTransactionReader",
    "DEFAULT_TTL_SECONDS",
    "RecordStore",
    "TRANSACTIONS_PREFIX",
    "TTLCache",
    "default_ttl_from_env",
]

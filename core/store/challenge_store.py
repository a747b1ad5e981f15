"""
Challenge Store

Keyed, TTL-aware storage for ephemeral sign-in and repository challenges.

The store is the only shared mutable state in the verification flows.
Single-use is enforced by ``compare_and_delete``: of two callers racing on
the same key with the same expected value, exactly one gets True.

Expiry is evaluated against an injectable clock so the store is testable
without wall-clock dependence.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class StoreEntry(Generic[T]):
    """A stored value with its absolute expiry (clock seconds)."""

    value: T
    expires_at: float


class ChallengeStore(ABC, Generic[T]):
    """Abstract interface for challenge storage backends."""

    @abstractmethod
    def now(self) -> float:
        """Current time according to the store's clock."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Return the live value for key, or None if missing or expired."""
        pass

    @abstractmethod
    def put(self, key: str, value: T, expires_at: float) -> Optional[T]:
        """Store value, replacing any live entry. Returns the replaced value."""
        pass

    @abstractmethod
    def put_if_absent(self, key: str, value: T, expires_at: float) -> bool:
        """Store value only if no live entry exists. Returns True if stored."""
        pass

    @abstractmethod
    def compare_and_delete(self, key: str, expected: T) -> bool:
        """Atomically delete the live entry if it equals expected."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete the entry for key. Returns True if something was removed."""
        pass

    @abstractmethod
    def sweep_expired(self) -> int:
        """Remove expired entries. Returns count removed."""
        pass


class MemoryChallengeStore(ChallengeStore[T]):
    """
    In-memory challenge store with TTL expiry.

    Suitable for single-instance deployments. A shared backend only has to
    provide the same atomic compare-and-delete to slot in behind the
    ChallengeStore interface.

    Example:
        >>> store = MemoryChallengeStore()
        >>> store.put("0xabc", challenge, store.now() + 300)
        >>> store.compare_and_delete("0xabc", challenge)
        True
        >>> store.compare_and_delete("0xabc", challenge)
        False
    """

    def __init__(
        self,
        clock: Clock | None = None,
        max_size: int = 100000,
        sweep_interval: float = 60.0,
        name: str = "challenges",
    ):
        """
        Initialize the memory store.

        Args:
            clock: Zero-arg callable returning epoch seconds (default time.time).
            max_size: Maximum live entries before the oldest is evicted.
            sweep_interval: Seconds between opportunistic expiry sweeps.
            name: Label used in log lines.
        """
        self._clock = clock or time.time
        self._entries: OrderedDict[str, StoreEntry[T]] = OrderedDict()
        self._max_size = max_size
        self._sweep_interval = sweep_interval
        self._name = name
        self._lock = threading.RLock()
        self._last_sweep = self._clock()
        self._stats = {"stored": 0, "claimed": 0, "expired": 0, "evicted": 0}

    def now(self) -> float:
        return self._clock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._live_entry(key)
            return entry.value if entry else None

    def put(self, key: str, value: T, expires_at: float) -> Optional[T]:
        with self._lock:
            self._maybe_sweep()
            previous = self._live_entry(key)
            self._entries.pop(key, None)
            self._evict_for_insert()
            self._entries[key] = StoreEntry(value=value, expires_at=float(expires_at))
            self._stats["stored"] += 1
            return previous.value if previous else None

    def put_if_absent(self, key: str, value: T, expires_at: float) -> bool:
        with self._lock:
            if self._live_entry(key) is not None:
                return False
            if expires_at <= self._clock():
                return False
            self._evict_for_insert()
            self._entries[key] = StoreEntry(value=value, expires_at=float(expires_at))
            self._stats["stored"] += 1
            return True

    def compare_and_delete(self, key: str, expected: T) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None or entry.value != expected:
                return False
            del self._entries[key]
            self._stats["claimed"] += 1
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def sweep_expired(self) -> int:
        with self._lock:
            return self._sweep_internal()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> dict[str, Any]:
        """Return store statistics."""
        with self._lock:
            return {**self._stats, "active": len(self._entries), "max_size": self._max_size}

    # Internal helpers, called with the lock held

    def _live_entry(self, key: str) -> Optional[StoreEntry[T]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self._stats["expired"] += 1
            return None
        return entry

    def _evict_for_insert(self) -> None:
        while len(self._entries) >= self._max_size:
            oldest, _ = self._entries.popitem(last=False)
            self._stats["evicted"] += 1
            logger.warning("%s store full, evicted %s", self._name, oldest)

    def _sweep_internal(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        self._stats["expired"] += len(expired)
        self._last_sweep = now
        if expired:
            logger.debug("Swept %d expired %s", len(expired), self._name)
        return len(expired)

    def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self._sweep_interval:
            self._sweep_internal()

"""
Identity record storage.

The resolver only needs find-by-field and create/update. MemoryIdentityStore
enforces the uniqueness of wallet addresses and GitHub logins, and hands out
copies so callers never mutate stored state in place.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from core.schemas.errors import StorageException
from core.schemas.identity import Identity

logger = logging.getLogger(__name__)

# Fields compared case-insensitively
_CASELESS_FIELDS = frozenset({"wallet_address", "github_username", "github_repo"})

# Fields that may be bound to at most one identity
UNIQUE_FIELDS = ("wallet_address", "github_username")

SEARCHABLE_FIELDS = frozenset(
    {"id", "display_name", "wallet_address", "github_username", "github_repo", "birth_issue"}
)


def _normalize(field_name: str, value: Any) -> Any:
    if field_name in _CASELESS_FIELDS and isinstance(value, str):
        return value.lower()
    return value


class IdentityStore(ABC):
    """Abstract interface for persistent identity records."""

    @abstractmethod
    def get(self, identity_id: str) -> Optional[Identity]:
        pass

    @abstractmethod
    def find_by(self, field_name: str, value: Any) -> Optional[Identity]:
        """First identity whose ``field_name`` equals ``value``."""
        pass

    @abstractmethod
    def create(self, identity: Identity) -> Identity:
        pass

    @abstractmethod
    def update(self, identity: Identity) -> Identity:
        pass

    @abstractmethod
    def list_all(self) -> list[Identity]:
        pass


class MemoryIdentityStore(IdentityStore):
    """In-memory identity store. Records are never deleted."""

    def __init__(self) -> None:
        self._records: dict[str, Identity] = {}
        self._lock = threading.RLock()

    def get(self, identity_id: str) -> Optional[Identity]:
        with self._lock:
            record = self._records.get(identity_id)
            return record.model_copy(deep=True) if record else None

    def find_by(self, field_name: str, value: Any) -> Optional[Identity]:
        if field_name not in SEARCHABLE_FIELDS:
            raise StorageException(f"Field is not searchable: {field_name}")
        if value is None:
            return None
        target = _normalize(field_name, value)
        with self._lock:
            for record in self._records.values():
                if _normalize(field_name, getattr(record, field_name)) == target:
                    return record.model_copy(deep=True)
        return None

    def create(self, identity: Identity) -> Identity:
        with self._lock:
            if identity.id in self._records:
                raise StorageException(f"Identity already exists: {identity.id}")
            self._check_unique(identity)
            self._records[identity.id] = identity.model_copy(deep=True)
            logger.info("Created identity %s (%s)", identity.id, identity.kind.value)
            return identity.model_copy(deep=True)

    def update(self, identity: Identity) -> Identity:
        with self._lock:
            if identity.id not in self._records:
                raise StorageException(f"Identity not found: {identity.id}")
            self._check_unique(identity)
            stored = identity.model_copy(
                deep=True, update={"updated_at": datetime.now(timezone.utc)}
            )
            self._records[identity.id] = stored
            return stored.model_copy(deep=True)

    def list_all(self) -> list[Identity]:
        with self._lock:
            records = sorted(self._records.values(), key=lambda r: r.created_at)
            return [r.model_copy(deep=True) for r in records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _check_unique(self, identity: Identity) -> None:
        for field_name in UNIQUE_FIELDS:
            value = getattr(identity, field_name)
            if value is None:
                continue
            target = _normalize(field_name, value)
            for other in self._records.values():
                if other.id == identity.id:
                    continue
                if _normalize(field_name, getattr(other, field_name)) == target:
                    raise StorageException(
                        f"{field_name} is already bound to another identity",
                        details={"field": field_name, "identity_id": other.id},
                    )

"""
Challenge storage.

TTL-aware key-value storage with atomic compare-and-delete, used for
wallet nonces and repository verification codes.
"""
from .challenge_store import (
    ChallengeStore,
    Clock,
    MemoryChallengeStore,
    StoreEntry,
)

__all__ = [
    "ChallengeStore",
    "Clock",
    "MemoryChallengeStore",
    "StoreEntry",
]

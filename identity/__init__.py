"""
Identity resolution, allow-list approval, session tokens and
membership snapshots.
"""
from .allowlist import AllowList, AllowRule, PatternKind, compile_pattern
from .membership import MembershipService, leaves_from_identities
from .records import IdentityStore, MemoryIdentityStore
from .resolver import GithubAspect, IdentityResolver, Resolution, WalletAspect
from .tokens import SessionTokenIssuer

__all__ = [
    "AllowList",
    "AllowRule",
    "PatternKind",
    "compile_pattern",
    "MembershipService",
    "leaves_from_identities",
    "IdentityStore",
    "MemoryIdentityStore",
    "GithubAspect",
    "IdentityResolver",
    "Resolution",
    "WalletAspect",
    "SessionTokenIssuer",
]

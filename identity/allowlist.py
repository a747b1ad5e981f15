"""
Allow-list matching for automatic approval.

Patterns are compiled once into (kind, value) rules and matched through a
small dispatch table, so adding a new pattern kind means adding one row.

Pattern syntax:
- "owner/repo"  exact match
- "owner/*"     any repository of owner (prefix match on "owner/")
- "*"           everything

Matching is case-insensitive: GitHub owners, repository names and hex
addresses are all case-insensitive.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from core.config.runtime import AllowListConfig

WILDCARD = "*"


class PatternKind(str, Enum):
    EXACT = "exact"
    PREFIX = "prefix"


_MATCHERS: dict[PatternKind, Callable[[str, str], bool]] = {
    PatternKind.EXACT: lambda value, candidate: candidate == value,
    PatternKind.PREFIX: lambda value, candidate: candidate.startswith(value),
}


@dataclass(frozen=True)
class AllowRule:
    """One compiled allow-list pattern."""

    kind: PatternKind
    value: str
    pattern: str

    def matches(self, candidate: str) -> bool:
        return _MATCHERS[self.kind](self.value, candidate.strip().lower())


def compile_pattern(pattern: str) -> AllowRule:
    """Compile a pattern string into a rule."""
    normalized = pattern.strip().lower()
    if not normalized:
        raise ValueError("Allow-list pattern must not be empty")
    if normalized.endswith(WILDCARD):
        return AllowRule(PatternKind.PREFIX, normalized[: -len(WILDCARD)], pattern)
    return AllowRule(PatternKind.EXACT, normalized, pattern)


class AllowList:
    """
    An ordered set of compiled allow-list rules.

    Example:
        >>> allow = AllowList(["org/*"])
        >>> allow.matches("org/repo-a"), allow.matches("other/repo-a")
        (True, False)
    """

    def __init__(self, patterns: Iterable[str] = (), enabled: bool = True):
        self.enabled = enabled
        self.rules = tuple(compile_pattern(p) for p in patterns if p and p.strip())

    @classmethod
    def from_config(cls, config: AllowListConfig) -> "AllowList":
        return cls(config.patterns, enabled=config.enabled)

    def matches(self, candidate: Optional[str]) -> bool:
        """True if the allow-list is enabled and any rule matches candidate."""
        if not self.enabled or not candidate:
            return False
        return any(rule.matches(candidate) for rule in self.rules)

    def matches_any(self, *candidates: Optional[str]) -> bool:
        return any(self.matches(c) for c in candidates)

    def __len__(self) -> int:
        return len(self.rules)

    def __repr__(self) -> str:
        patterns = [rule.pattern for rule in self.rules]
        return f"AllowList(patterns={patterns!r}, enabled={self.enabled})"


AllowListProvider = Callable[[], AllowList]


def static_provider(allowlist: AllowList) -> AllowListProvider:
    """Provider that always returns the same allow-list."""
    return lambda: allowlist


def config_provider(config: AllowListConfig) -> AllowListProvider:
    """
    Provider that recompiles from a live config object on every call.

    Edits to ``config.patterns`` or ``config.enabled`` take effect on the
    next resolution.
    """
    return lambda: AllowList.from_config(config)

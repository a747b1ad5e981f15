"""
Runtime Configuration Module

Provides configuration loading and management for the identity service.
"""

from .runtime import (
    AllowListConfig,
    AuthConfig,
    GitHubConfig,
    MerkleConfig,
    RuntimeConfig,
    SessionConfig,
    get_default_config,
    set_default_config,
)

__all__ = [
    "AllowListConfig",
    "AuthConfig",
    "GitHubConfig",
    "MerkleConfig",
    "RuntimeConfig",
    "SessionConfig",
    "get_default_config",
    "set_default_config",
]

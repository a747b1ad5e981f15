"""
Runtime Configuration

Central configuration for the sign-in protocol, GitHub access,
allow-list approval and session tokens.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Optional
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ENV_PREFIX = "ORACLENET_"


@dataclass
class AuthConfig:
    """Configuration for the two verification protocols."""
    domain: str = "oraclenet.local"
    uri: str = "https://oraclenet.local"
    statement: str = "Sign in to OracleNet"
    chain_id: int = 1
    nonce_ttl_seconds: int = 300
    repo_code_ttl_seconds: int = 600
    birth_label: str = "birth-props"
    default_birth_repo: str = "Soul-Brews-Studio/oracle-v2"


@dataclass
class GitHubConfig:
    """Configuration for the read-only GitHub API client."""
    api_base: str = "https://api.github.com"
    token: Optional[str] = None
    timeout: float = 10.0
    max_retries: int = 1
    retry_delay: float = 0.5
    user_agent: str = "oraclenet-identity"

    def __post_init__(self):
        # Load token from environment if not provided
        if self.token is None:
            self.token = os.getenv("GITHUB_TOKEN")


@dataclass
class AllowListConfig:
    """Configuration for automatic approval of known repositories."""
    enabled: bool = True
    patterns: list[str] = field(default_factory=lambda: ["Soul-Brews-Studio/*"])
    allow_agent_registration: bool = True

    def __post_init__(self):
        # The settings record stores patterns as one comma-separated string
        if isinstance(self.patterns, str):
            self.patterns = [p.strip() for p in self.patterns.split(",") if p.strip()]


@dataclass
class SessionConfig:
    """Configuration for session token issuance."""
    secret: Optional[str] = None
    algorithm: str = "HS256"
    expiry_hours: int = 24
    issuer: str = "oraclenet"


@dataclass
class MerkleConfig:
    """Configuration for the membership tree."""
    require_approved: bool = True


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for the identity service.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    auth: AuthConfig = field(default_factory=AuthConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    allowlist: AllowListConfig = field(default_factory=AllowListConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    merkle: MerkleConfig = field(default_factory=MerkleConfig)
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - ORACLENET_DOMAIN / ORACLENET_URI / ORACLENET_CHAIN_ID: sign-in message fields
        - ORACLENET_BIRTH_LABEL: Label required on birth issues
        - ORACLENET_GITHUB_TOKEN: GitHub API token (also checks GITHUB_TOKEN)
        - ORACLENET_GITHUB_API: GitHub API base URL
        - ORACLENET_WHITELISTED_REPOS: Comma-separated allow-list patterns
        - ORACLENET_ALLOWLIST_ENABLED: Enable allow-list approval (true/false)
        - ORACLENET_SESSION_SECRET: Session token signing secret
        - ORACLENET_LOG_LEVEL: Logging level
        """
        overrides: dict[str, Any] = {}

        def env(name: str) -> Optional[str]:
            return os.getenv(ENV_PREFIX + name)

        # Auth settings
        if env("DOMAIN"):
            overrides.setdefault("auth", {})["domain"] = env("DOMAIN")
        if env("URI"):
            overrides.setdefault("auth", {})["uri"] = env("URI")
        if env("CHAIN_ID"):
            overrides.setdefault("auth", {})["chain_id"] = int(env("CHAIN_ID"))
        if env("BIRTH_LABEL"):
            overrides.setdefault("auth", {})["birth_label"] = env("BIRTH_LABEL")

        # GitHub settings
        if env("GITHUB_TOKEN"):
            overrides.setdefault("github", {})["token"] = env("GITHUB_TOKEN")
        if env("GITHUB_API"):
            overrides.setdefault("github", {})["api_base"] = env("GITHUB_API")

        # Allow-list settings
        if env("WHITELISTED_REPOS") is not None:
            overrides.setdefault("allowlist", {})["patterns"] = env("WHITELISTED_REPOS")
        if env("ALLOWLIST_ENABLED"):
            overrides.setdefault("allowlist", {})["enabled"] = (
                env("ALLOWLIST_ENABLED").lower() == "true"
            )

        # Session
        if env("SESSION_SECRET"):
            overrides.setdefault("session", {})["secret"] = env("SESSION_SECRET")

        if env("LOG_LEVEL"):
            overrides["log_level"] = env("LOG_LEVEL").upper()

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        auth_data = data.get("auth", {})
        github_data = data.get("github", {})
        allowlist_data = data.get("allowlist", {})
        session_data = data.get("session", {})
        merkle_data = data.get("merkle", {})

        return cls(
            auth=AuthConfig(**auth_data) if auth_data else AuthConfig(),
            github=GitHubConfig(**github_data) if github_data else GitHubConfig(),
            allowlist=AllowListConfig(**allowlist_data) if allowlist_data else AllowListConfig(),
            session=SessionConfig(**session_data) if session_data else SessionConfig(),
            merkle=MerkleConfig(**merkle_data) if merkle_data else MerkleConfig(),
            log_level=data.get("log_level", "INFO"),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)

        for section in ("auth", "github", "allowlist", "session"):
            for key, value in overrides.get(section, {}).items():
                setattr(getattr(new_config, section), key, value)

        # Re-split a comma-separated pattern string
        new_config.allowlist.__post_init__()

        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary. Secrets are never included."""
        return {
            "auth": {
                "domain": self.auth.domain,
                "uri": self.auth.uri,
                "statement": self.auth.statement,
                "chain_id": self.auth.chain_id,
                "nonce_ttl_seconds": self.auth.nonce_ttl_seconds,
                "repo_code_ttl_seconds": self.auth.repo_code_ttl_seconds,
                "birth_label": self.auth.birth_label,
                "default_birth_repo": self.auth.default_birth_repo,
            },
            "github": {
                "api_base": self.github.api_base,
                "timeout": self.github.timeout,
                "max_retries": self.github.max_retries,
                "token_configured": bool(self.github.token),
            },
            "allowlist": {
                "enabled": self.allowlist.enabled,
                "patterns": list(self.allowlist.patterns),
                "allow_agent_registration": self.allowlist.allow_agent_registration,
            },
            "session": {
                "algorithm": self.session.algorithm,
                "expiry_hours": self.session.expiry_hours,
                "issuer": self.session.issuer,
                "secret_configured": bool(self.session.secret),
            },
            "merkle": {
                "require_approved": self.merkle.require_approved,
            },
            "log_level": self.log_level,
            "extra": self.extra,
        }


# Global default configuration
_default_config: Optional[RuntimeConfig] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.from_env()
    return _default_config


def set_default_config(config: Optional[RuntimeConfig]) -> None:
    """Set (or with None, reset) the default runtime configuration."""
    global _default_config
    _default_config = config

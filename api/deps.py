"""
API Dependencies

Dependency injection for the API. One Services container holds the
verification services and their stores for the lifetime of the process;
tests swap it with ``app.dependency_overrides[get_services]``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from auth.github_source import GitHubIssueSource, IssueSource
from auth.nonce_store import NonceStore
from auth.repo_challenge import RepoVerificationChallenge
from auth.wallet_verifier import WalletSignInService
from core.config.runtime import RuntimeConfig
from core.store import Clock, MemoryChallengeStore
from identity.allowlist import config_provider
from identity.membership import MembershipService
from identity.records import IdentityStore, MemoryIdentityStore
from identity.resolver import IdentityResolver
from identity.tokens import SessionTokenIssuer

logger = logging.getLogger(__name__)


def config_search_paths() -> list[Path]:
    return [
        Path.cwd() / "oraclenet.json",
        Path.cwd() / ".oraclenet.json",
        Path.home() / ".config" / "oraclenet" / "config.json",
    ]


def load_runtime_config() -> RuntimeConfig:
    """Load RuntimeConfig from config file, then overlay environment variables.

    Search order for config file:
      1. ./oraclenet.json
      2. ./.oraclenet.json
      3. ~/.config/oraclenet/config.json

    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically by core.config.runtime on import.
    """
    config: RuntimeConfig | None = None

    for path in config_search_paths():
        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                logger.info("Loaded config from %s", path)
                config = RuntimeConfig.from_dict(data)
                break
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Failed to parse %s: %s", path, e)

    if config is None:
        config = RuntimeConfig()

    return config.with_env_overrides()


@dataclass
class Services:
    """Everything the routes need, wired once."""

    config: RuntimeConfig
    identity_store: IdentityStore
    resolver: IdentityResolver
    nonce_store: NonceStore
    wallet: WalletSignInService
    repo_challenge: RepoVerificationChallenge
    membership: MembershipService
    tokens: SessionTokenIssuer


def build_services(
    config: Optional[RuntimeConfig] = None,
    *,
    issue_source: Optional[IssueSource] = None,
    identity_store: Optional[IdentityStore] = None,
    clock: Optional[Clock] = None,
) -> Services:
    """
    Wire the verification services.

    Args:
        config: Runtime config (default: loaded from file + env)
        issue_source: GitHub access (default: REST API client from config)
        identity_store: Record store (default: in-memory)
        clock: Time source shared by both challenge stores
    """
    config = config or load_runtime_config()
    if identity_store is None:
        identity_store = MemoryIdentityStore()
    resolver = IdentityResolver(identity_store, config_provider(config.allowlist))
    tokens = SessionTokenIssuer.from_config(config.session)

    nonce_store = NonceStore(
        store=MemoryChallengeStore(clock=clock, name="nonces"),
        config=config.auth,
    )
    repo_challenge = RepoVerificationChallenge(
        source=issue_source if issue_source is not None else GitHubIssueSource.from_config(config.github),
        resolver=resolver,
        store=MemoryChallengeStore(clock=clock, name="repo challenges"),
        config=config.auth,
    )

    return Services(
        config=config,
        identity_store=identity_store,
        resolver=resolver,
        nonce_store=nonce_store,
        wallet=WalletSignInService(nonce_store, resolver, tokens),
        repo_challenge=repo_challenge,
        membership=MembershipService(identity_store, config.merkle.require_approved),
        tokens=tokens,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """FastAPI dependency returning the process-wide services."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]) -> None:
    """Replace (or with None, reset) the process-wide services."""
    global _services
    _services = services

"""
Identity resolution.

Maps a verified wallet address or GitHub account to a persistent Identity
record, links the two aspects onto one record, and applies allow-list
approval.

Approval from the allow-list is re-evaluated on every wallet resolution
(the provider is consulted each time), so admin edits take effect on the
next call. Identities proven through their repository stay approved.

A birth issue supplied at wallet sign-in is only a claim. It is stored
with ``repo_verified`` unset and counts for neither approval nor kind
until a repository challenge proves it through resolve_by_github() or a
GithubAspect link.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from core.schemas.canonical import canonical_address
from core.schemas.errors import ConflictingLinkException, IdentityNotFoundException
from core.schemas.identity import Identity, classify_identity

from identity.allowlist import AllowList, AllowListProvider, static_provider
from identity.records import IdentityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletAspect:
    """A verified wallet credential."""
    address: str


@dataclass(frozen=True)
class GithubAspect:
    """A verified GitHub repository credential."""
    username: str
    repo: str
    birth_issue: Optional[str] = None


Aspect = Union[WalletAspect, GithubAspect]


@dataclass
class Resolution:
    """Outcome of a resolve call."""
    identity: Identity
    created: bool

    @property
    def approved(self) -> bool:
        return self.identity.approved


def repo_of_birth_issue(birth_issue: Optional[str]) -> Optional[str]:
    """'owner/repo' from a canonical issue URL, or None."""
    if not birth_issue:
        return None
    parts = birth_issue.split("github.com/", 1)
    if len(parts) != 2:
        return None
    segments = parts[1].split("/")
    if len(segments) < 2:
        return None
    return f"{segments[0]}/{segments[1]}"


class IdentityResolver:
    """
    Resolves verified credentials to Identity records.

    Args:
        store: Identity record store
        allowlist_provider: Called on every approval check
    """

    def __init__(
        self,
        store: IdentityStore,
        allowlist_provider: Optional[AllowListProvider] = None,
    ) -> None:
        self.store = store
        self.allowlist_provider = allowlist_provider or static_provider(AllowList())

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def is_allowed(self, identity: Identity) -> bool:
        """
        True if a verified repo or the wallet matches the current allow-list.

        An unproven birth issue claim is not consulted.
        """
        allowlist = self.allowlist_provider()
        proven_repo = (
            repo_of_birth_issue(identity.birth_issue) if identity.repo_verified else None
        )
        return allowlist.matches_any(
            identity.github_repo,
            proven_repo,
            identity.wallet_address,
        )

    def _evaluate_approval(self, identity: Identity) -> bool:
        return identity.repo_verified or self.is_allowed(identity)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_by_wallet(
        self,
        address: str,
        display_name: Optional[str] = None,
        birth_issue: Optional[str] = None,
    ) -> Resolution:
        """
        Find or create the identity bound to a verified wallet.

        ``birth_issue`` is recorded as an unverified claim on a new identity.

        Raises:
            InvalidAddressException: If address is malformed
            ConflictingLinkException: If another identity already holds
                the claimed birth issue
            StorageException: If the store rejects the write
        """
        wallet = canonical_address(address)
        existing = self.store.find_by("wallet_address", wallet)

        if existing is not None:
            approved = self._evaluate_approval(existing)
            if approved != existing.approved or not existing.wallet_verified:
                existing.approved = approved
                existing.wallet_verified = True
                existing.kind = classify_identity(existing)
                existing = self.store.update(existing)
                logger.info("Identity %s approval re-evaluated: %s", existing.id, approved)
            return Resolution(identity=existing, created=False)

        if birth_issue:
            self._check_birth_issue_free(None, birth_issue, verified_only=False)

        identity = Identity(
            display_name=display_name or f"Oracle-{wallet[:6]}",
            wallet_address=wallet,
            birth_issue=birth_issue,
            wallet_verified=True,
        )
        identity.approved = self._evaluate_approval(identity)
        identity.kind = classify_identity(identity)
        identity = self.store.create(identity)
        logger.info(
            "New wallet identity %s (approved=%s, kind=%s)",
            identity.id, identity.approved, identity.kind.value,
        )
        return Resolution(identity=identity, created=True)

    def resolve_by_github(
        self,
        username: str,
        repo: str,
        oracle_name: Optional[str] = None,
        birth_issue: Optional[str] = None,
    ) -> Resolution:
        """
        Find or create the identity bound to a verified repository.

        Only reached after a repository challenge succeeds, so the
        identity is approved unconditionally.

        A proven birth issue displaces unverified claims other identities
        made on it at wallet sign-in.

        Raises:
            ConflictingLinkException: If another repo-verified identity
                already holds the birth issue
            StorageException: If the store rejects the write
        """
        existing = self.store.find_by("github_username", username)
        if birth_issue:
            self._check_birth_issue_free(existing, birth_issue, verified_only=True)
            self._release_claims(birth_issue, keep=existing)

        if existing is not None:
            existing.github_repo = repo
            if birth_issue:
                existing.birth_issue = birth_issue
            existing.repo_verified = True
            existing.approved = True
            existing.kind = classify_identity(existing)
            existing = self.store.update(existing)
            logger.info("Identity %s re-verified repo %s", existing.id, repo)
            return Resolution(identity=existing, created=False)

        identity = Identity(
            display_name=oracle_name or username,
            github_username=username,
            github_repo=repo,
            birth_issue=birth_issue,
            repo_verified=True,
            approved=True,
        )
        identity.kind = classify_identity(identity)
        identity = self.store.create(identity)
        logger.info("New GitHub identity %s for %s", identity.id, repo)
        return Resolution(identity=identity, created=True)

    def find_by_name(self, name: str) -> Identity:
        """
        Raises:
            IdentityNotFoundException: If no identity has this display name
        """
        identity = self.store.find_by("display_name", name)
        if identity is None:
            raise IdentityNotFoundException(
                f"Identity not found: {name}", details={"name": name}
            )
        return identity

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def check_link(self, identity: Identity, aspect: Aspect) -> None:
        """
        Raise if linking ``aspect`` onto ``identity`` would overwrite anything.

        Read-only; callers use it to fail before consuming a challenge.

        Raises:
            ConflictingLinkException: If a field holds a different value or
                the credential is already bound to another identity
        """
        if isinstance(aspect, WalletAspect):
            wallet = canonical_address(aspect.address)
            self._check_field(identity, "wallet_address", wallet)
            self._check_owner(identity, "wallet_address", wallet)
        elif isinstance(aspect, GithubAspect):
            self._check_field(identity, "github_username", aspect.username)
            self._check_field(identity, "github_repo", aspect.repo)
            if aspect.birth_issue:
                if identity.repo_verified:
                    self._check_field(identity, "birth_issue", aspect.birth_issue)
                self._check_birth_issue_free(identity, aspect.birth_issue, verified_only=True)
            self._check_owner(identity, "github_username", aspect.username)
        else:
            raise TypeError(f"Unsupported aspect: {type(aspect).__name__}")

    def link(self, identity: Identity, aspect: Aspect) -> Identity:
        """
        Merge a wallet or GitHub aspect onto an identity.

        Succeeds only if the target field is unset or already equal.

        Raises:
            ConflictingLinkException: If the link would overwrite a different value
        """
        self.check_link(identity, aspect)
        updated = identity.model_copy(deep=True)

        if isinstance(aspect, WalletAspect):
            updated.wallet_address = canonical_address(aspect.address)
            updated.wallet_verified = True
        else:
            updated.github_username = aspect.username
            updated.github_repo = aspect.repo
            if aspect.birth_issue:
                updated.birth_issue = aspect.birth_issue
                self._release_claims(aspect.birth_issue, keep=identity)
            updated.repo_verified = True

        updated.approved = self._evaluate_approval(updated)
        updated.kind = classify_identity(updated)
        updated = self.store.update(updated)
        logger.info("Linked %s onto identity %s", type(aspect).__name__, updated.id)
        return updated

    def _check_field(self, identity: Identity, field_name: str, value: str) -> None:
        current = getattr(identity, field_name)
        if current is not None and current.lower() != value.lower():
            logger.warning(
                "Link conflict on %s: identity %s already has a different value",
                field_name, identity.id,
            )
            raise ConflictingLinkException(
                f"Identity already has a different {field_name}",
                details={"identity_id": identity.id, "field": field_name},
            )

    def _check_owner(self, identity: Identity, field_name: str, value: str) -> None:
        owner = self.store.find_by(field_name, value)
        if owner is not None and owner.id != identity.id:
            logger.warning(
                "Link conflict on %s: credential already bound to identity %s",
                field_name, owner.id,
            )
            raise ConflictingLinkException(
                f"This {field_name} is already linked to another identity",
                details={"field": field_name, "bound_to": owner.id},
            )

    def _check_birth_issue_free(
        self,
        identity: Optional[Identity],
        birth_issue: str,
        verified_only: bool,
    ) -> None:
        """Raise if another identity holds ``birth_issue`` (only proven holders if ``verified_only``)."""
        for other in self._holders(birth_issue, exclude=identity):
            if verified_only and not other.repo_verified:
                continue
            logger.warning(
                "Birth issue %s already held by identity %s", birth_issue, other.id
            )
            raise ConflictingLinkException(
                "This birth issue is already linked to another identity",
                details={"field": "birth_issue", "bound_to": other.id},
            )

    def _release_claims(self, birth_issue: str, keep: Optional[Identity]) -> None:
        """Drop unverified claims on ``birth_issue`` held by anyone but ``keep``."""
        for other in self._holders(birth_issue, exclude=keep):
            if other.repo_verified:
                continue
            other.birth_issue = None
            other.approved = self._evaluate_approval(other)
            other.kind = classify_identity(other)
            self.store.update(other)
            logger.warning(
                "Dropped unverified birth issue claim of identity %s on %s",
                other.id, birth_issue,
            )

    def _holders(self, birth_issue: str, exclude: Optional[Identity]) -> list[Identity]:
        target = birth_issue.lower()
        return [
            other for other in self.store.list_all()
            if other.birth_issue
            and other.birth_issue.lower() == target
            and (exclude is None or other.id != exclude.id)
        ]

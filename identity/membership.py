"""
Membership snapshot.

Turns the current identity set into Merkle leaves and builds the tree on
demand. The tree is never stored; each call works from one consistent
snapshot of the identity store.
"""
from __future__ import annotations

import logging
from typing import Iterable

from core.merkle import MerkleLeaf, MerkleProof, MerkleProofService, MerkleTree, MerkleTreeBuilder
from core.schemas.canonical import canonical_address
from core.schemas.identity import Identity

from identity.records import IdentityStore

logger = logging.getLogger(__name__)


def leaves_from_identities(
    identities: Iterable[Identity],
    require_approved: bool = True,
) -> list[MerkleLeaf]:
    """
    Leaves for every identity with a wallet and a repo-verified birth issue.

    Identities whose birth issue URL has no trailing issue number are
    skipped, as are unapproved ones when ``require_approved`` is set.
    """
    leaves: list[MerkleLeaf] = []
    for identity in identities:
        if not identity.wallet_address or not identity.birth_issue:
            continue
        if not identity.repo_verified:
            continue
        if require_approved and not identity.approved:
            continue
        number = identity.birth_issue_number
        if number is None:
            logger.warning("Identity %s has an unparseable birth issue", identity.id)
            continue
        leaves.append(
            MerkleLeaf(
                wallet_address=identity.wallet_address,
                birth_issue_url=identity.birth_issue,
                issue_number=number,
            )
        )
    return leaves


class MembershipService:
    """Builds membership trees and proofs from the identity store."""

    def __init__(self, store: IdentityStore, require_approved: bool = True) -> None:
        self.store = store
        self.require_approved = require_approved

    def leaves(self) -> list[MerkleLeaf]:
        return leaves_from_identities(self.store.list_all(), self.require_approved)

    def tree(self) -> MerkleTree:
        tree = MerkleTreeBuilder.build(self.leaves())
        logger.debug("Built membership tree with %d leaves", tree.leaf_count)
        return tree

    def prove(self, wallet_address: str, issue_number: int) -> MerkleProof:
        """
        Raises:
            InvalidAddressException: If wallet_address is malformed
            LeafNotFoundException: If the wallet has no leaf with that issue number
        """
        return MerkleProofService.prove(self.tree(), wallet_address, issue_number)

    def owner_leaves(self, wallet_address: str) -> list[MerkleLeaf]:
        """All leaves belonging to one wallet, in tree order."""
        tree = self.tree()
        wallet = canonical_address(wallet_address)
        return [leaf for leaf in tree.leaves if leaf.wallet_address == wallet]

"""
Merkle Tree Builder and Proof Service
Class-based interfaces over the functions in merkle_tree.py.

This module provides:
- MerkleTreeBuilder: Build a MerkleTree from a snapshot of leaves
- MerkleProofService: Generate proofs from a built tree, and verify
  proofs from (leaf, proof, root) alone

Verification never touches the leaf set. Anyone holding a leaf, its proof
and a published root can run verify_membership independently.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from core.crypto.hashing import from_hex32
from core.merkle.merkle_tree import (
    EMPTY_TREE_ROOT,
    MerkleLeaf,
    MerkleProof,
    MerkleTree,
    build_layers,
    build_merkle_proof,
    fold_proof,
    order_leaves,
)
from core.schemas.errors import LeafNotFoundException, ProofVerificationFailedException

logger = logging.getLogger(__name__)


class MerkleTreeBuilder:
    """
    Builds deterministic membership trees.

    Example:
        >>> tree = MerkleTreeBuilder.build(leaves)
        >>> tree.leaf_count == len(set(leaves))
        True
    """

    @staticmethod
    def build(leaves: Iterable[MerkleLeaf]) -> MerkleTree:
        """
        Build a tree over a consistent snapshot of leaves.

        Leaves are ordered canonically before hashing, so the input
        order does not affect the root.
        """
        ordered = order_leaves(leaves)
        layers = build_layers([leaf.hash() for leaf in ordered])
        root = layers[-1][0] if layers else EMPTY_TREE_ROOT
        return MerkleTree(
            leaves=tuple(ordered),
            layers=tuple(tuple(layer) for layer in layers),
            root=root,
            leaf_index={leaf: i for i, leaf in enumerate(ordered)},
        )

    @staticmethod
    def compute_root(leaves: Iterable[MerkleLeaf]) -> bytes:
        """Root of the tree over ``leaves`` without keeping the layers."""
        return MerkleTreeBuilder.build(leaves).root


class MerkleProofService:
    """
    Proof generation against a built tree, and tree-free verification.

    Example:
        >>> proof = MerkleProofService.prove_membership(tree, 1)
        >>> MerkleProofService.verify_membership(tree.leaves[1], proof, tree.root)
        True
    """

    @staticmethod
    def prove_membership(tree: MerkleTree, leaf_index: int) -> list[bytes]:
        """
        Ordered sibling hashes from the leaf at ``leaf_index`` up to the root.

        Raises:
            LeafNotFoundException: If the tree is empty or the index is out of range
        """
        try:
            return build_merkle_proof(tree.layers, leaf_index)
        except (IndexError, ValueError) as e:
            raise LeafNotFoundException(
                str(e),
                details={"leaf_index": leaf_index, "leaf_count": tree.leaf_count},
            ) from e

    @staticmethod
    def prove(tree: MerkleTree, wallet_address: str, issue_number: int) -> MerkleProof:
        """
        Full proof for the leaf identified by wallet and issue number.

        Raises:
            InvalidAddressException: If wallet_address is malformed
            LeafNotFoundException: If no such leaf is in the tree
        """
        index = tree.find(wallet_address, issue_number)
        if index is None:
            raise LeafNotFoundException(
                f"No leaf for wallet {wallet_address} with issue #{issue_number}",
                details={"wallet": wallet_address, "issue_number": issue_number},
            )
        return MerkleProof(
            leaf=tree.leaves[index],
            index=index,
            siblings=MerkleProofService.prove_membership(tree, index),
            root=tree.root,
        )

    @staticmethod
    def verify_membership(leaf: MerkleLeaf, proof: Sequence[bytes], root: bytes) -> bool:
        """
        Check that ``leaf`` is a member of the tree with ``root``.

        Recomputes the leaf hash, folds each proof element in order
        through the sorted-pair hash, and compares with ``root``.
        """
        return fold_proof(leaf.hash(), proof) == root

    @staticmethod
    def verify_membership_hex(leaf: MerkleLeaf, proof: Sequence[str], root: str) -> bool:
        """
        verify_membership over 0x-prefixed hex inputs.

        Malformed hex in the proof or root makes the proof invalid.
        """
        try:
            siblings = [from_hex32(p) for p in proof]
            root_bytes = from_hex32(root)
        except ValueError as e:
            logger.debug("Rejecting malformed proof: %s", e)
            return False
        return MerkleProofService.verify_membership(leaf, siblings, root_bytes)

    @staticmethod
    def verify(proof: MerkleProof) -> bool:
        """Verify a MerkleProof against the root it carries."""
        return MerkleProofService.verify_membership(proof.leaf, proof.siblings, proof.root)

    @staticmethod
    def verify_or_raise(proof: MerkleProof) -> None:
        """
        Verify a proof, raising if invalid.

        Raises:
            ProofVerificationFailedException: If the proof does not fold to its root
        """
        if not MerkleProofService.verify(proof):
            raise ProofVerificationFailedException(
                "Merkle proof verification failed",
                details={"leaf_index": proof.index},
            )


__all__ = [
    "MerkleTreeBuilder",
    "MerkleProofService",
]

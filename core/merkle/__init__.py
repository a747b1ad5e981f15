"""
Merkle Membership Tree
Deterministic membership tree + proof generation/verification.

This module provides:
- MerkleLeaf: Canonical (wallet, birth issue URL, issue number) record
- MerkleTree: Ordered leaves, every layer, root and leaf index map
- MerkleTreeBuilder: Build a tree from a leaf snapshot
- MerkleProofService: Prove membership, and verify from (leaf, proof, root)

Canonical Commitment Rules:
1. Leaf hashing: keccak256(keccak256(abi.encode(address, string, uint256)))
2. Parent hashing: keccak256(sorted(a, b) concatenated)
3. Odd layer: carry the last node up unchanged
4. Empty tree: keccak256(b"")
5. Single leaf: root = leaf

Usage:
    from core.merkle import MerkleLeaf, MerkleTreeBuilder, MerkleProofService

    tree = MerkleTreeBuilder.build(leaves)
    proof = MerkleProofService.prove_membership(tree, 2)
    assert MerkleProofService.verify_membership(tree.leaves[2], proof, tree.root)
"""
from .merkle_tree import (
    EMPTY_TREE_ROOT,
    MerkleLeaf,
    MerkleProof,
    MerkleTree,
    order_leaves,
    build_layers,
    build_merkle_root,
    build_merkle_proof,
    fold_proof,
    compute_tree_depth,
)

from .merkle_proofs import (
    MerkleTreeBuilder,
    MerkleProofService,
)


__all__ = [
    # Core types
    "EMPTY_TREE_ROOT",
    "MerkleLeaf",
    "MerkleProof",
    "MerkleTree",
    # Core functions
    "order_leaves",
    "build_layers",
    "build_merkle_root",
    "build_merkle_proof",
    "fold_proof",
    "compute_tree_depth",
    # Services
    "MerkleTreeBuilder",
    "MerkleProofService",
]

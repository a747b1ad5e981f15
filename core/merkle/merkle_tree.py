"""
Merkle Tree Implementation
Deterministic membership tree over verified Oracle leaves.

This module provides:
- MerkleLeaf: the canonical (wallet, birth issue, issue number) record
- Deterministic layer construction and root computation
- Merkle proof generation for any leaf index
- Merkle proof folding (root recomputation from leaf + proof)

Canonical Commitment Rules (Hard Contracts):
1. Leaf hashing: leaf = keccak256(keccak256(abi.encode(address, string, uint256)))
   - Implemented via core.crypto.hashing.hash_leaf()
2. Parent hashing: parent = keccak256(min(a, b) + max(a, b))
3. Odd layer rule: the last unpaired node is carried up unchanged, never duplicated
4. Leaf order: ascending by (issue_number, wallet_address, birth_issue_url)
5. Empty leaves: root is keccak256(b"")
6. Single leaf: root = leaf (the leaf hash itself), proof is empty

These rules produce the same root and proofs as the widely deployed
"standard" Merkle tree format used by on-chain verifiers, so a contract
can check membership with a plain sorted-pair proof fold.

Determinism Notes:
- No randomness or non-deterministic ordering
- Duplicate leaves are collapsed before hashing
- The tree is a derived artifact, rebuilt from a leaf snapshot on demand
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from core.crypto.hashing import hash_leaf, hash_pair, keccak256, to_hex
from core.schemas.canonical import UINT256_MAX, canonical_address


# Empty tree sentinel: keccak256 of empty bytes
EMPTY_TREE_ROOT: bytes = keccak256(b"")


@dataclass(frozen=True)
class MerkleLeaf:
    """
    One Oracle's membership record.

    Attributes:
        wallet_address: Canonical lower-case 0x address
        birth_issue_url: Canonical URL of the Oracle's birth issue
        issue_number: Non-negative integer used as the primary sort key
    """
    wallet_address: str
    birth_issue_url: str
    issue_number: int

    def __post_init__(self) -> None:
        """Canonicalize the wallet and validate the issue number."""
        object.__setattr__(self, "wallet_address", canonical_address(self.wallet_address))
        if isinstance(self.issue_number, bool) or not isinstance(self.issue_number, int):
            raise ValueError(f"Issue number must be an integer, got {self.issue_number!r}")
        if self.issue_number < 0 or self.issue_number > UINT256_MAX:
            raise ValueError(f"Issue number out of range: {self.issue_number}")
        if not isinstance(self.birth_issue_url, str):
            raise ValueError("Birth issue URL must be a string")

    @property
    def sort_key(self) -> tuple[int, str, str]:
        return (self.issue_number, self.wallet_address, self.birth_issue_url)

    def hash(self) -> bytes:
        """Leaf hash under the canonical tuple encoding."""
        return hash_leaf(self.wallet_address, self.birth_issue_url, self.issue_number)

    def to_dict(self) -> dict[str, Any]:
        return {
            "walletAddress": self.wallet_address,
            "birthIssueURL": self.birth_issue_url,
            "issueNumber": self.issue_number,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MerkleLeaf":
        """Build a leaf from camelCase or snake_case keys."""
        try:
            wallet = data.get("walletAddress", data.get("wallet_address"))
            url = data.get("birthIssueURL", data.get("birth_issue_url", data.get("birth_issue")))
            number = data.get("issueNumber", data.get("issue_number"))
        except AttributeError as e:
            raise ValueError(f"Leaf must be an object, got {type(data).__name__}") from e
        if wallet is None or url is None or number is None:
            raise ValueError("Leaf requires walletAddress, birthIssueURL and issueNumber")
        return cls(wallet_address=wallet, birth_issue_url=url, issue_number=number)


@dataclass(frozen=True)
class MerkleProof:
    """
    A Merkle inclusion proof for a single leaf.

    Attributes:
        leaf: The leaf being proven
        index: The 0-based position of the leaf in the ordered leaf layer
        siblings: Sibling hashes from bottom to top, carried-up layers skipped
        root: The Merkle root this proof is against
    """
    leaf: MerkleLeaf
    index: int
    siblings: list[bytes]
    root: bytes

    def __post_init__(self) -> None:
        """Validate proof structure."""
        if self.index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.index}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": to_hex(self.root),
            "proof": [to_hex(s) for s in self.siblings],
            "leaf": self.leaf.to_dict(),
            "leafHash": to_hex(self.leaf.hash()),
            "leafIndex": self.index,
        }


@dataclass(frozen=True)
class MerkleTree:
    """
    A built membership tree.

    Attributes:
        leaves: Leaves in canonical order
        layers: layers[0] are leaf hashes, layers[-1] is [root]
        root: The tree root (EMPTY_TREE_ROOT when there are no leaves)
        leaf_index: Map from leaf to its position in ``leaves``
    """
    leaves: tuple[MerkleLeaf, ...]
    layers: tuple[tuple[bytes, ...], ...]
    root: bytes
    leaf_index: dict[MerkleLeaf, int] = field(default_factory=dict, compare=False)

    @property
    def leaf_count(self) -> int:
        return len(self.leaves)

    @property
    def depth(self) -> int:
        return len(self.layers)

    def index_of(self, leaf: MerkleLeaf) -> int | None:
        return self.leaf_index.get(leaf)

    def find(self, wallet_address: str, issue_number: int) -> int | None:
        """Index of the first leaf with this wallet and issue number."""
        wallet = canonical_address(wallet_address)
        for i, leaf in enumerate(self.leaves):
            if leaf.wallet_address == wallet and leaf.issue_number == issue_number:
                return i
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": to_hex(self.root),
            "leafCount": self.leaf_count,
            "layers": [[to_hex(node) for node in layer] for layer in self.layers],
            "leaves": [leaf.to_dict() for leaf in self.leaves],
        }


def order_leaves(leaves: Iterable[MerkleLeaf]) -> list[MerkleLeaf]:
    """
    Put leaves in canonical order, collapsing duplicates.

    Primary key is issue_number; wallet address and birth issue URL
    break ties so independent builders agree on the order.
    """
    return sorted(set(leaves), key=lambda leaf: leaf.sort_key)


def build_layers(leaf_hashes: Sequence[bytes]) -> list[list[bytes]]:
    """
    Build every layer of the tree from ordered leaf hashes.

    Algorithm:
    1. If empty: no layers
    2. Start with the leaf layer
    3. Pair adjacent nodes with hash_pair
    4. If a layer is odd, carry its last node up unchanged
    5. Repeat until a single node remains

    Example: [a, b, c] -> [[a, b, c], [pair(a, b), c], [pair(pair(a, b), c)]]
    """
    if len(leaf_hashes) == 0:
        return []

    layers: list[list[bytes]] = [list(leaf_hashes)]

    while len(layers[-1]) > 1:
        current = layers[-1]
        next_layer: list[bytes] = []
        for i in range(0, len(current) - 1, 2):
            next_layer.append(hash_pair(current[i], current[i + 1]))
        if len(current) % 2 == 1:
            # Carry up
            next_layer.append(current[-1])
        layers.append(next_layer)

    return layers


def build_merkle_root(leaf_hashes: Sequence[bytes]) -> bytes:
    """
    Compute the root over ordered leaf hashes.

    Returns:
        32-byte root, EMPTY_TREE_ROOT for no leaves
    """
    layers = build_layers(leaf_hashes)
    if not layers:
        return EMPTY_TREE_ROOT
    return layers[-1][0]


def build_merkle_proof(layers: Sequence[Sequence[bytes]], index: int) -> list[bytes]:
    """
    Collect the sibling hashes for the leaf at ``index``.

    Algorithm:
    1. Start at the target leaf index in layer 0
    2. At each layer below the root:
       - If the node is the unpaired last node, it is carried up: no sibling
       - Otherwise record the sibling (index XOR 1)
       - Move up: index = index // 2
    3. Stop at the root layer

    Raises:
        IndexError: If index is out of range
        ValueError: If there are no layers
    """
    if len(layers) == 0:
        raise ValueError("Cannot generate proof for empty tree")

    if index < 0 or index >= len(layers[0]):
        raise IndexError(
            f"Leaf index {index} out of range for {len(layers[0])} leaves"
        )

    siblings: list[bytes] = []
    current_index = index

    for layer in layers[:-1]:
        sibling_index = current_index ^ 1
        if sibling_index < len(layer):
            siblings.append(layer[sibling_index])
        current_index = current_index // 2

    return siblings


def fold_proof(leaf_hash: bytes, siblings: Iterable[bytes]) -> bytes:
    """Recompute a root by folding siblings into the leaf hash in order."""
    current = leaf_hash
    for sibling in siblings:
        current = hash_pair(current, sibling)
    return current


def compute_tree_depth(num_leaves: int) -> int:
    """
    Number of layers in a tree with the given number of leaves.

    A single leaf has depth 1, two leaves depth 2, three or four leaves
    depth 3. In general depth = ceil(log2(n)) + 1.
    """
    if num_leaves == 0:
        return 0

    depth = 1
    n = num_leaves
    while n > 1:
        n = (n + 1) // 2
        depth += 1

    return depth


__all__ = [
    "EMPTY_TREE_ROOT",
    "MerkleLeaf",
    "MerkleProof",
    "MerkleTree",
    "order_leaves",
    "build_layers",
    "build_merkle_root",
    "build_merkle_proof",
    "fold_proof",
    "compute_tree_depth",
]

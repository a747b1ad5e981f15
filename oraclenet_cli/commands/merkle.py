"""
CLI Merkle Commands

Offline membership-tree work over a JSON file of leaves:
- root:   compute the root and leaf count
- prove:  emit an inclusion proof for one (wallet, issue number) leaf
- verify: check a proof file from (leaf, proof, root) alone
- tree:   print every layer

A leaves file is a JSON array of objects with walletAddress,
birthIssueURL and issueNumber (or {"leaves": [...]}).

Usage:
    oraclenet merkle root leaves.json [--json]
    oraclenet merkle prove leaves.json --wallet 0x... --issue 1 [--out proof.json]
    oraclenet merkle verify proof.json [--root 0x...] [--json]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from core.crypto.hashing import to_hex
from core.merkle import MerkleLeaf, MerkleProofService, MerkleTree, MerkleTreeBuilder
from core.schemas.errors import OracleNetException


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


class LeafFileError(Exception):
    """Raised when a leaves or proof file cannot be used."""


@dataclass
class ProofCheckSummary:
    """Result of an offline proof check."""
    proof_path: str = ""
    root: str = ""
    leaf: dict[str, Any] = field(default_factory=dict)
    proof_length: int = 0
    valid: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if not d["errors"]:
            del d["errors"]
        return d


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise LeafFileError(f"File not found: {path}")
    try:
        with open(path) as f:
            return json.load(f)
    except ValueError as e:
        raise LeafFileError(f"Invalid JSON in {path}: {e}") from e


def load_leaves(path: Path) -> list[MerkleLeaf]:
    """Read and validate a leaves file."""
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("leaves")
    if not isinstance(data, list):
        raise LeafFileError(f"{path} must contain a JSON array of leaves")

    leaves: list[MerkleLeaf] = []
    for i, item in enumerate(data):
        try:
            leaves.append(MerkleLeaf.from_dict(item))
        except (ValueError, OracleNetException) as e:
            raise LeafFileError(f"Leaf #{i} is invalid: {e}") from e
    logger.info("Loaded %d leaves from %s", len(leaves), path)
    return leaves


def build_tree(path: Path) -> MerkleTree:
    return MerkleTreeBuilder.build(load_leaves(path))


def _emit(payload: dict[str, Any], out: str | None) -> None:
    text = json.dumps(payload, indent=2)
    if out:
        Path(out).write_text(text + "\n")
        print(f"Wrote {out}", file=sys.stderr)
    else:
        print(text)


def root_cmd(args: Namespace) -> int:
    """Handle `merkle root`."""
    try:
        tree = build_tree(Path(args.leaves))
    except LeafFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.json:
        print(json.dumps({"root": to_hex(tree.root), "leafCount": tree.leaf_count}, indent=2))
    else:
        print(f"Root:   {to_hex(tree.root)}")
        print(f"Leaves: {tree.leaf_count}")
    return EXIT_SUCCESS


def tree_cmd(args: Namespace) -> int:
    """Handle `merkle tree`."""
    try:
        tree = build_tree(Path(args.leaves))
    except LeafFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.json:
        print(json.dumps(tree.to_dict(), indent=2))
        return EXIT_SUCCESS

    for depth, layer in enumerate(tree.layers):
        print(f"Layer {depth} ({len(layer)} node{'s' if len(layer) != 1 else ''}):")
        for node in layer:
            print(f"  {to_hex(node)}")
    print(f"Root: {to_hex(tree.root)}")
    return EXIT_SUCCESS


def prove_cmd(args: Namespace) -> int:
    """Handle `merkle prove`."""
    try:
        tree = build_tree(Path(args.leaves))
        proof = MerkleProofService.prove(tree, args.wallet, args.issue)
    except LeafFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except OracleNetException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _emit(proof.to_dict(), args.out)
    return EXIT_SUCCESS


def check_proof_file(path: Path, root_override: str | None = None) -> ProofCheckSummary:
    """Verify a proof file as written by `merkle prove`."""
    summary = ProofCheckSummary(proof_path=str(path))
    data = _read_json(path)
    if not isinstance(data, dict):
        raise LeafFileError(f"{path} must contain a proof object")

    try:
        leaf = MerkleLeaf.from_dict(data.get("leaf") or {})
    except (ValueError, OracleNetException) as e:
        summary.errors.append(f"Invalid leaf: {e}")
        return summary

    proof = data.get("proof") or []
    root = root_override or data.get("root", "")
    summary.root = root
    summary.leaf = leaf.to_dict()
    summary.proof_length = len(proof)

    if not isinstance(proof, list) or not all(isinstance(p, str) for p in proof):
        summary.errors.append("Proof must be a list of hex strings")
        return summary

    summary.valid = MerkleProofService.verify_membership_hex(leaf, proof, root)
    if not summary.valid:
        summary.errors.append("Proof does not fold to the expected root")
    return summary


def verify_cmd(args: Namespace) -> int:
    """Handle `merkle verify`."""
    try:
        summary = check_proof_file(Path(args.proof), args.root)
    except LeafFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        status = "VALID" if summary.valid else "INVALID"
        print(f"Proof:  {summary.proof_path}")
        print(f"Root:   {summary.root}")
        print(f"Leaf:   {summary.leaf.get('walletAddress', '?')} #{summary.leaf.get('issueNumber', '?')}")
        print(f"Result: {status}")
        for err in summary.errors:
            print(f"  - {err}")

    return EXIT_SUCCESS if summary.valid else EXIT_VERIFICATION_FAILED

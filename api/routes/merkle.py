"""
Merkle Routes

Membership root, proofs and the full tree, rebuilt from the identity
set on every request. POST /merkle/verify checks a proof without
touching the identity set.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import Services, get_services
from api.errors import InvalidRequestError
from api.models.requests import MerkleVerifyRequest
from api.models.responses import (
    MerkleProofResponse,
    MerkleRootResponse,
    MerkleTreeResponse,
    MerkleVerifyResponse,
)
from core.crypto.hashing import to_hex
from core.merkle import MerkleLeaf, MerkleProofService
from core.schemas.errors import InvalidAddressException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/merkle", tags=["merkle"])


@router.get("/root", response_model=MerkleRootResponse)
def merkle_root(services: Services = Depends(get_services)) -> MerkleRootResponse:
    """Current membership root."""
    tree = services.membership.tree()
    return MerkleRootResponse(root=to_hex(tree.root), leaf_count=tree.leaf_count)


@router.get("/tree", response_model=MerkleTreeResponse)
def merkle_tree(services: Services = Depends(get_services)) -> MerkleTreeResponse:
    """Every layer of the current tree, for inspection."""
    return MerkleTreeResponse(**services.membership.tree().to_dict())


@router.get("/owner/{wallet}")
def merkle_owner(wallet: str, services: Services = Depends(get_services)) -> dict:
    """Leaves held by one wallet, with the current root."""
    tree = services.membership.tree()
    leaves = services.membership.owner_leaves(wallet)
    return {
        "wallet": wallet.lower(),
        "root": to_hex(tree.root),
        "leafCount": tree.leaf_count,
        "leaves": [
            {**leaf.to_dict(), "leafIndex": tree.index_of(leaf)} for leaf in leaves
        ],
    }


@router.get("/proof/{wallet}/{issue_number}", response_model=MerkleProofResponse)
def merkle_proof(
    wallet: str,
    issue_number: int,
    services: Services = Depends(get_services),
) -> MerkleProofResponse:
    """Inclusion proof for one (wallet, issue number) leaf."""
    proof = services.membership.prove(wallet, issue_number)
    return MerkleProofResponse(**proof.to_dict())


@router.post("/verify", response_model=MerkleVerifyResponse)
def merkle_verify(request: MerkleVerifyRequest) -> MerkleVerifyResponse:
    """Check a (leaf, proof, root) triple. Needs no server state."""
    try:
        leaf = MerkleLeaf(
            wallet_address=request.leaf.wallet_address,
            birth_issue_url=request.leaf.birth_issue_url,
            issue_number=request.leaf.issue_number,
        )
    except (InvalidAddressException, ValueError) as e:
        raise InvalidRequestError(f"Invalid leaf: {e}") from e
    valid = MerkleProofService.verify_membership_hex(leaf, request.proof, request.root)
    return MerkleVerifyResponse(valid=valid)

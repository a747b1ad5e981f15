"""
API Smoke Tests

Tests for the FastAPI endpoints:
1. GET /health returns ok
2. Wallet nonce -> sign -> verify mints a token and resolves the identity
3. GitHub start -> comment -> verify resolves an approved Oracle
4. Merkle root / proof / verify round through the HTTP surface
5. Domain errors map to the error envelope with the right status
"""

import pytest
from fastapi.testclient import TestClient

from api.app import app
from api.deps import build_services, get_services
from core.config.runtime import RuntimeConfig
from core.crypto.hashing import keccak256, to_hex
from fixtures.common import BIRTH_ISSUE_URL, BIRTH_REPO, FakeClock, make_account, sign


@pytest.fixture
def services(issue_source):
    config = RuntimeConfig.from_dict({"session": {"secret": "test-secret"}})
    return build_services(config, issue_source=issue_source, clock=FakeClock())


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _github_verify(client, issue_source, repo, author, name):
    issue_url = f"https://github.com/{repo}/issues/1"
    if issue_url != BIRTH_ISSUE_URL:
        issue_source.add_issue(repo=repo, author=author, body=f"**Name**: {name}")
    code = client.post("/auth/github/start", json={"issueUrl": issue_url}).json()["code"]
    issue_source.add_comment(author, f"verify:{code}", repo=repo)
    response = client.post("/auth/github/verify", json={"issueUrl": issue_url, "code": code})
    assert response.json()["success"] is True
    return response


def _link_wallet(client, account, target_name):
    nonce = client.post("/auth/wallet/nonce", json={"address": account.address}).json()
    body = {
        "address": account.address,
        "signature": sign(nonce["message"], account),
        "targetName": target_name,
    }
    return client.post("/auth/wallet/link", json=body)


def _proven_oracle(client, issue_source, account, repo, author, name):
    _github_verify(client, issue_source, repo, author, name)
    response = _link_wallet(client, account, name)
    assert response.status_code == 200
    return response


def _wallet_sign_in(client, account, **extra):
    nonce = client.post("/auth/wallet/nonce", json={"address": account.address})
    assert nonce.status_code == 200
    message = nonce.json()["message"]
    body = {"address": account.address, "signature": sign(message, account), **extra}
    return client.post("/auth/wallet/verify", json=body)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_root(self, client):
        assert client.get("/").json()["service"] == "oraclenet-identity"


class TestWalletEndpoints:
    def test_sign_in_flow(self, client, services):
        account = make_account(0x11)

        response = _wallet_sign_in(client, account, displayName="Aria", birthIssue=3)

        assert response.status_code == 200
        data = response.json()
        assert data["created"] is True
        assert data["approved"] is False
        assert data["identity"]["kind"] == "unverified_oracle"
        assert data["identity"]["displayName"] == "Aria"
        assert data["identity"]["birthIssue"] == (
            "https://github.com/Soul-Brews-Studio/oracle-v2/issues/3"
        )
        assert services.tokens.decode(data["token"])["sub"] == data["identity"]["id"]

    def test_claimed_birth_issue_is_not_a_leaf(self, client):
        _wallet_sign_in(client, make_account(0x11), birthIssue=3)
        assert client.get("/merkle/root").json()["leafCount"] == 0

    def test_birth_issue_claimed_twice_is_conflict(self, client):
        assert _wallet_sign_in(client, make_account(0x11), birthIssue=3).status_code == 200

        response = _wallet_sign_in(client, make_account(0x22), birthIssue=3)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICTING_LINK"

    def test_nonce_response(self, client):
        account = make_account(0x11)
        data = client.post("/auth/wallet/nonce", json={"address": account.address}).json()
        assert data["nonce"] in data["message"]
        assert "expiresAt" in data

    def test_replay_rejected(self, client):
        account = make_account(0x11)
        nonce = client.post("/auth/wallet/nonce", json={"address": account.address}).json()
        body = {"address": account.address, "signature": sign(nonce["message"], account)}
        assert client.post("/auth/wallet/verify", json=body).status_code == 200

        replay = client.post("/auth/wallet/verify", json=body)

        assert replay.status_code == 401
        assert replay.json()["error"]["code"] == "NONCE_NOT_FOUND_OR_EXPIRED"

    def test_wrong_signer(self, client):
        account, other = make_account(0x11), make_account(0x22)
        nonce = client.post("/auth/wallet/nonce", json={"address": account.address}).json()
        body = {"address": account.address, "signature": sign(nonce["message"], other)}

        response = client.post("/auth/wallet/verify", json=body)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    def test_invalid_address(self, client):
        response = client.post("/auth/wallet/nonce", json={"address": "0x1234"})
        assert response.status_code == 400
        assert response.json()["ok"] is False
        assert response.json()["error"]["code"] == "INVALID_ADDRESS"

    def test_missing_field(self, client):
        response = client.post("/auth/wallet/verify", json={"address": "0x" + "ab" * 20})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_link_unknown_target(self, client):
        account = make_account(0x11)
        nonce = client.post("/auth/wallet/nonce", json={"address": account.address}).json()
        body = {
            "address": account.address,
            "signature": sign(nonce["message"], account),
            "targetName": "Nobody",
        }
        response = client.post("/auth/wallet/link", json=body)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IDENTITY_NOT_FOUND"


class TestGithubEndpoints:
    def test_start_and_verify(self, client, issue_source, services):
        start = client.post("/auth/github/start", json={"issueUrl": BIRTH_ISSUE_URL})
        assert start.status_code == 200
        started = start.json()
        assert started["oracleName"] == "Aria"
        assert started["expiresIn"] == "10 minutes"

        issue_source.add_comment("nat", f"verify:{started['code']}")
        verify = client.post(
            "/auth/github/verify", json={"issueUrl": BIRTH_ISSUE_URL, "code": started["code"]}
        )

        assert verify.status_code == 200
        data = verify.json()
        assert data["success"] is True
        assert data["approved"] is True
        assert data["identity"]["githubUsername"] == "nat"
        assert data["identity"]["kind"] == "oracle"
        assert services.tokens.decode(data["token"]) is not None

    def test_typed_failure_is_200(self, client):
        client.post("/auth/github/start", json={"issueUrl": BIRTH_ISSUE_URL})
        verify = client.post(
            "/auth/github/verify", json={"issueUrl": BIRTH_ISSUE_URL, "code": "zzzzzzzz"}
        )
        assert verify.status_code == 200
        assert verify.json()["success"] is False
        assert verify.json()["errorCode"] == "CODE_MISMATCH_OR_EXPIRED"

    def test_wrong_issue_number(self, client):
        response = client.post(
            "/auth/github/start",
            json={"issueUrl": "https://github.com/Soul-Brews-Studio/aria-oracle/issues/5"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "WRONG_ISSUE_NUMBER"

    def test_upstream_unavailable(self, client, issue_source):
        issue_source.unavailable = True
        response = client.post("/auth/github/start", json={"issueUrl": BIRTH_ISSUE_URL})
        assert response.status_code == 503
        assert response.json()["error"]["retryable"] is True


class TestMerkleEndpoints:
    def test_empty_root(self, client):
        data = client.get("/merkle/root").json()
        assert data["root"] == to_hex(keccak256(b""))
        assert data["leafCount"] == 0

    def test_proof_round_trip(self, client, issue_source):
        _proven_oracle(client, issue_source, make_account(0x11), BIRTH_REPO, "nat", "Aria")
        _proven_oracle(client, issue_source, make_account(0x22), "Soul-Brews-Studio/bo-oracle", "bo", "Bo")
        _proven_oracle(client, issue_source, make_account(0x33), "Soul-Brews-Studio/cy-oracle", "cy", "Cy")

        root = client.get("/merkle/root").json()
        assert root["leafCount"] == 3

        wallet = make_account(0x22).address
        proof = client.get(f"/merkle/proof/{wallet}/1")
        assert proof.status_code == 200
        proof_data = proof.json()
        assert proof_data["root"] == root["root"]

        verify = client.post("/merkle/verify", json={
            "leaf": proof_data["leaf"],
            "proof": proof_data["proof"],
            "root": proof_data["root"],
        })
        assert verify.json() == {"valid": True}

        tampered = dict(proof_data["leaf"], issueNumber=2)
        verify = client.post("/merkle/verify", json={
            "leaf": tampered,
            "proof": proof_data["proof"],
            "root": proof_data["root"],
        })
        assert verify.json() == {"valid": False}

    def test_tree_and_owner(self, client, issue_source):
        account = make_account(0x11)
        _proven_oracle(client, issue_source, account, BIRTH_REPO, "nat", "Aria")

        tree = client.get("/merkle/tree").json()
        assert tree["leafCount"] == 1
        assert tree["layers"] == [[tree["root"]]]

        owner = client.get(f"/merkle/owner/{account.address}").json()
        assert owner["wallet"] == account.address.lower()
        assert owner["leaves"][0]["issueNumber"] == 1
        assert owner["leaves"][0]["leafIndex"] == 0

    def test_unknown_leaf(self, client):
        response = client.get(f"/merkle/proof/{'0x' + 'ab' * 20}/1")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LEAF_NOT_FOUND"

    def test_verify_invalid_leaf(self, client):
        response = client.post("/merkle/verify", json={
            "leaf": {"walletAddress": "0x12", "birthIssueURL": "u", "issueNumber": 1},
            "proof": [],
            "root": "0x" + "00" * 32,
        })
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

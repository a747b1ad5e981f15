"""
Wallet Sign-In Unit Tests
Tests for auth/nonce_store.py, auth/message.py, core/crypto/signatures.py
and auth/wallet_verifier.py
"""
import re

import pytest

from auth.message import parse_sign_in_message
from auth.nonce_store import NonceStore
from auth.wallet_verifier import SignatureVerifier, WalletSignInService
from core.config.runtime import AuthConfig
from core.crypto.signatures import Signature, recover_signer, verify_personal_signature
from core.schemas.errors import (
    ConflictingLinkException,
    IdentityNotFoundException,
    InvalidAddressException,
    InvalidSignatureException,
    NonceNotFoundOrExpiredException,
    NonceReplayException,
    StorageException,
)
from core.schemas.identity import IdentityKind
from core.store import MemoryChallengeStore
from identity.allowlist import AllowList, static_provider
from identity.records import MemoryIdentityStore
from identity.resolver import IdentityResolver
from identity.tokens import SessionTokenIssuer
from fixtures.common import sign


BIRTH_ISSUE = "https://github.com/Soul-Brews-Studio/oracle-v2/issues/7"


@pytest.fixture
def nonce_store(clock):
    return NonceStore(store=MemoryChallengeStore(clock=clock), config=AuthConfig())


@pytest.fixture
def verifier(nonce_store):
    return SignatureVerifier(nonce_store)


@pytest.fixture
def resolver():
    return IdentityResolver(
        MemoryIdentityStore(),
        static_provider(AllowList(["Soul-Brews-Studio/*"])),
    )


@pytest.fixture
def tokens():
    return SessionTokenIssuer(secret="test-secret")


@pytest.fixture
def service(nonce_store, resolver, tokens):
    return WalletSignInService(nonce_store, resolver, tokens)


class TestSignatures:
    """Personal-message signature recovery."""

    def test_recovers_signer(self, account):
        signature = sign("hello oracle", account)
        assert recover_signer("hello oracle", signature) == account.address.lower()

    def test_verify_is_case_insensitive(self, account):
        signature = sign("hello oracle", account)
        assert verify_personal_signature(account.address, "hello oracle", signature)
        assert verify_personal_signature(account.address.lower(), "hello oracle", signature)

    def test_other_message_fails(self, account):
        signature = sign("hello oracle", account)
        assert not verify_personal_signature(account.address, "hello oracle!", signature)

    def test_other_signer_fails(self, account, other_account):
        signature = sign("hello oracle", other_account)
        assert not verify_personal_signature(account.address, "hello oracle", signature)

    @pytest.mark.parametrize("bad", ["0x1234", "zz", "0x" + "ab" * 64])
    def test_malformed_signature_is_false(self, account, bad):
        assert not verify_personal_signature(account.address, "hello", bad)

    def test_signature_length_checked(self):
        with pytest.raises(InvalidSignatureException, match="65 bytes"):
            Signature.from_hex("0x" + "00" * 64)

    def test_invalid_address_raises(self):
        with pytest.raises(InvalidAddressException):
            verify_personal_signature("0xnope", "hello", "0x" + "00" * 65)


class TestNonceStore:
    """Challenge issuance."""

    def test_issue_nonce_message(self, nonce_store, account, clock):
        challenge = nonce_store.issue_nonce(account.address)

        assert challenge.address == account.address.lower()
        assert re.fullmatch(r"[0-9a-f]{16}", challenge.nonce)
        assert account.address in challenge.message
        assert f"Nonce: {challenge.nonce}" in challenge.message
        assert (challenge.expires_at - challenge.issued_at).total_seconds() == 300
        assert challenge.issued_at.timestamp() == int(clock())

    def test_message_parses_back(self, nonce_store, account):
        challenge = nonce_store.issue_nonce(account.address)
        parsed = parse_sign_in_message(challenge.message)

        assert parsed is not None
        assert parsed.address == challenge.address
        assert parsed.nonce == challenge.nonce
        assert parsed.issued_at == challenge.issued_at
        assert parsed.expires_at == challenge.expires_at
        assert parsed.render() == challenge.message

    def test_parse_rejects_other_text(self):
        assert parse_sign_in_message("sign this please") is None

    def test_nonces_are_fresh(self, nonce_store, account):
        first = nonce_store.issue_nonce(account.address)
        second = nonce_store.issue_nonce(account.address)
        assert first.nonce != second.nonce
        assert nonce_store.get(account.address) == second

    def test_invalid_address(self, nonce_store):
        with pytest.raises(InvalidAddressException):
            nonce_store.issue_nonce("0x123")

    def test_restore_after_claim(self, nonce_store, account):
        challenge = nonce_store.issue_nonce(account.address)
        assert nonce_store.consume(challenge)
        assert nonce_store.get(account.address) is None
        assert nonce_store.restore(challenge)
        assert nonce_store.get(account.address) == challenge

    def test_restore_does_not_overwrite_newer(self, nonce_store, account):
        old = nonce_store.issue_nonce(account.address)
        nonce_store.consume(old)
        newer = nonce_store.issue_nonce(account.address)
        assert not nonce_store.restore(old)
        assert nonce_store.get(account.address) == newer


class TestSignatureVerifier:
    """Single-use verification against the stored challenge."""

    def test_valid_signature_consumes(self, verifier, nonce_store, account):
        challenge = nonce_store.issue_nonce(account.address)
        assert verifier.verify(account.address, challenge.message, sign(challenge.message, account))
        assert nonce_store.get(account.address) is None

    def test_message_is_optional(self, verifier, nonce_store, account):
        challenge = nonce_store.issue_nonce(account.address)
        claimed = verifier.claim(account.address, sign(challenge.message, account))
        assert claimed == challenge

    def test_replay_fails(self, verifier, nonce_store, account):
        challenge = nonce_store.issue_nonce(account.address)
        signature = sign(challenge.message, account)
        verifier.verify(account.address, challenge.message, signature)

        with pytest.raises(NonceNotFoundOrExpiredException):
            verifier.verify(account.address, challenge.message, signature)

    def test_no_challenge(self, verifier, account):
        with pytest.raises(NonceNotFoundOrExpiredException):
            verifier.verify(account.address, None, "0x" + "00" * 65)

    def test_expired_challenge(self, verifier, nonce_store, account, clock):
        challenge = nonce_store.issue_nonce(account.address)
        clock.advance(300)
        with pytest.raises(NonceNotFoundOrExpiredException):
            verifier.verify(account.address, challenge.message, sign(challenge.message, account))

    def test_wrong_signer_leaves_challenge(self, verifier, nonce_store, account, other_account):
        challenge = nonce_store.issue_nonce(account.address)
        with pytest.raises(InvalidSignatureException):
            verifier.verify(account.address, challenge.message, sign(challenge.message, other_account))

        assert nonce_store.get(account.address) == challenge
        assert verifier.verify(account.address, challenge.message, sign(challenge.message, account))

    def test_tampered_message_rejected(self, verifier, nonce_store, account):
        challenge = nonce_store.issue_nonce(account.address)
        tampered = challenge.message.replace("Sign in to OracleNet", "Transfer everything")
        with pytest.raises(InvalidSignatureException, match="differs"):
            verifier.verify(account.address, tampered, sign(tampered, account))

    def test_arbitrary_text_rejected(self, verifier, nonce_store, account):
        nonce_store.issue_nonce(account.address)
        with pytest.raises(InvalidSignatureException, match="not a sign-in challenge"):
            verifier.verify(account.address, "anything", sign("anything", account))

    def test_superseded_challenge_rejected(self, verifier, nonce_store, account):
        old = nonce_store.issue_nonce(account.address)
        nonce_store.issue_nonce(account.address)
        with pytest.raises(InvalidSignatureException, match="nonce"):
            verifier.verify(account.address, old.message, sign(old.message, account))

    def test_concurrent_claim_is_replay(self, verifier, nonce_store, account, monkeypatch):
        challenge = nonce_store.issue_nonce(account.address)
        monkeypatch.setattr(nonce_store, "consume", lambda c: False)
        with pytest.raises(NonceReplayException):
            verifier.verify(account.address, challenge.message, sign(challenge.message, account))

    def test_expiry_during_claim_is_not_replay(self, verifier, nonce_store, account, clock, monkeypatch):
        challenge = nonce_store.issue_nonce(account.address)

        def expire_then_fail(c):
            clock.advance(AuthConfig().nonce_ttl_seconds + 1)
            return False

        monkeypatch.setattr(nonce_store, "consume", expire_then_fail)
        with pytest.raises(NonceNotFoundOrExpiredException):
            verifier.verify(account.address, challenge.message, sign(challenge.message, account))


class TestWalletSignIn:
    """Sign-in and linking through WalletSignInService."""

    def _sign_in(self, service, account, **kwargs):
        challenge = service.issue_nonce(account.address)
        return service.sign_in(account.address, sign(challenge.message, account), **kwargs)

    def test_first_sign_in_creates_agent(self, service, account, tokens):
        result = self._sign_in(service, account)

        assert result.created is True
        assert result.identity.kind is IdentityKind.AGENT
        assert result.identity.wallet_verified is True
        assert result.approved is False
        assert result.identity.display_name == f"Oracle-{account.address.lower()[:6]}"
        assert tokens.decode(result.token)["sub"] == result.identity.id

    def test_claimed_birth_issue_stays_unverified(self, service, account):
        result = self._sign_in(service, account, display_name="Aria", birth_issue=BIRTH_ISSUE)

        assert result.approved is False
        assert result.identity.kind is IdentityKind.UNVERIFIED_ORACLE
        assert result.identity.repo_verified is False
        assert result.identity.birth_issue == BIRTH_ISSUE
        assert result.identity.display_name == "Aria"

    def test_birth_issue_claimed_twice_conflicts(self, service, nonce_store, account, other_account):
        self._sign_in(service, account, birth_issue=BIRTH_ISSUE)
        challenge = service.issue_nonce(other_account.address)

        with pytest.raises(ConflictingLinkException):
            service.sign_in(
                other_account.address,
                sign(challenge.message, other_account),
                birth_issue=BIRTH_ISSUE,
            )
        assert nonce_store.get(other_account.address) == challenge

    def test_second_sign_in_finds_same_identity(self, service, account):
        first = self._sign_in(service, account)
        second = self._sign_in(service, account)
        assert second.created is False
        assert second.identity.id == first.identity.id

    def test_challenge_restored_when_resolution_fails(self, service, nonce_store, account, monkeypatch):
        challenge = service.issue_nonce(account.address)

        def fail(*args, **kwargs):
            raise StorageException("disk full")

        monkeypatch.setattr(service.resolver, "resolve_by_wallet", fail)
        with pytest.raises(StorageException):
            service.sign_in(account.address, sign(challenge.message, account))

        assert nonce_store.get(account.address) == challenge

    def test_link_wallet_onto_github_identity(self, service, resolver, account):
        resolver.resolve_by_github("nat", "Soul-Brews-Studio/aria-oracle", oracle_name="Aria")
        challenge = service.issue_nonce(account.address)

        result = service.link(account.address, sign(challenge.message, account), "Aria")

        assert result.linked is True
        assert result.identity.wallet_address == account.address.lower()
        assert result.identity.github_username == "nat"
        assert result.identity.wallet_verified is True
        assert result.token

    def test_link_conflict_keeps_challenge(self, service, resolver, nonce_store, account):
        self._sign_in(service, account, display_name="Wallet-owner")
        resolver.resolve_by_github("nat", "Soul-Brews-Studio/aria-oracle", oracle_name="Aria")
        challenge = service.issue_nonce(account.address)

        with pytest.raises(ConflictingLinkException):
            service.link(account.address, sign(challenge.message, account), "Aria")
        assert nonce_store.get(account.address) == challenge

    def test_link_unknown_target(self, service, account):
        challenge = service.issue_nonce(account.address)
        with pytest.raises(IdentityNotFoundException):
            service.link(account.address, sign(challenge.message, account), "Nobody")

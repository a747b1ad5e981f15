"""
Test fixtures package for OracleNet identity tests.

- common.py: wallets, clocks, leaves, identities and a fake GitHub issue source

Usage:
    from fixtures.common import make_account, sign, FakeIssueSource

    def test_something():
        account = make_account(0x11)
        signature = sign(challenge.message, account)
"""

from .common import (
    BIRTH_ISSUE_URL,
    BIRTH_REPO,
    FakeClock,
    FakeIssueSource,
    make_account,
    make_identity,
    make_leaf,
    sign,
)

__all__ = [
    "BIRTH_ISSUE_URL",
    "BIRTH_REPO",
    "FakeClock",
    "FakeIssueSource",
    "make_account",
    "make_identity",
    "make_leaf",
    "sign",
]

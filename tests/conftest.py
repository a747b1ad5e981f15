"""
Pytest configuration and shared fixtures for OracleNet identity tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

FakeClock = _common.FakeClock
FakeIssueSource = _common.FakeIssueSource
make_account = _common.make_account


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def clock():
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def account():
    """Provide a deterministic wallet account."""
    return make_account(0x11)


@pytest.fixture
def other_account():
    """Provide a second wallet account, distinct from ``account``."""
    return make_account(0x22)


@pytest.fixture
def issue_source():
    """Provide a FakeIssueSource holding one labelled birth issue."""
    source = FakeIssueSource()
    source.add_issue()
    return source


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer environment variables out of config-sensitive tests."""
    for name in (
        "GITHUB_TOKEN",
        "ORACLENET_GITHUB_TOKEN",
        "ORACLENET_WHITELISTED_REPOS",
        "ORACLENET_ALLOWLIST_ENABLED",
        "ORACLENET_SESSION_SECRET",
        "ORACLENET_LOG_LEVEL",
        "ORACLENET_CLI_LOG_LEVEL",
        "ORACLENET_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )

"""Global test fixtures for the coffer test suite."""

from __future__ import annotations

import logging
import os

import pytest

from coffer.core.config import clear_config_cache
from coffer.identity.keys import Identity, Profile, generate

# ============================================================================
# Environment
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all COFFER_ environment variables (and EDITOR)."""
    for key in list(os.environ.keys()):
        if key.startswith("COFFER_") or key == "EDITOR":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts and ends without a cached config."""
    clear_config_cache()
    yield
    clear_config_cache()


# ============================================================================
# Identities
# ============================================================================


@pytest.fixture(scope="session")
def alice() -> Identity:
    return generate(Profile(email="alice@example.com", handle="alice"))


@pytest.fixture(scope="session")
def bob() -> Identity:
    return generate(Profile(email="bob@example.com", handle="bob"))


@pytest.fixture(scope="session")
def carol() -> Identity:
    return generate(Profile(email="carol@example.com"))


@pytest.fixture(scope="session")
def dave() -> Identity:
    return generate(Profile(email="dave@example.com", handle="dave"))


@pytest.fixture
def identity_factory():
    """Factory for throwaway identities."""

    def factory(email: str = "someone@example.com", handle: str | None = None) -> Identity:
        return generate(Profile(email=email, handle=handle))

    return factory


@pytest.fixture
def envelope_path(tmp_path):
    """Path for an envelope that does not exist yet."""
    return tmp_path / "secret.txt"



@pytest.fixture
def restore_root_logger():
    """Put the root logger's handlers and level back after the test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

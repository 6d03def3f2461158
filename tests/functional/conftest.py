from __future__ import annotations

"""Functional test bootstrap for the contract harness.

Every test runs from its own temporary working directory with the
`PACT_*` environment variables cleared, so `load_config()` only sees what a
test writes there. Contract files land under that directory as well.
"""

import contextlib
from typing import Iterator

import pytest

from pactmock.config import ContractConfig, PactConfig, ServerConfig
from pactmock.logic.registry import InteractionRegistry
from pactmock.server import MockServer

_PACT_ENV = (
    "PACT_DIR",
    "PACT_LOG_LEVEL",
    "PACT_HOST",
    "PACT_BIND_TIMEOUT",
    "PACT_FILE_WRITE_MODE",
    "PACT_PROVIDER",
)


@pytest.fixture(autouse=True)
def isolated_pact_env(tmp_path, monkeypatch) -> None:
    """Clear PACT_* overrides and run from a scratch directory."""
    for name in _PACT_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def pact_config(tmp_path) -> PactConfig:
    return PactConfig(
        server=ServerConfig(host="127.0.0.1", bind_timeout=5.0),
        contract=ContractConfig(pact_dir=str(tmp_path / "pacts"), file_write_mode="overwrite"),
        log_level="INFO",
    )


@pytest.fixture
def registry() -> InteractionRegistry:
    return InteractionRegistry()


@contextlib.contextmanager
def running(registry: InteractionRegistry, **kwargs) -> Iterator[MockServer]:  # type: ignore[no-untyped-def]
    """Serve `registry` on an ephemeral port for the duration of the block."""
    server = MockServer(registry, **kwargs)
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def serve():  # type: ignore[no-untyped-def]
    return running

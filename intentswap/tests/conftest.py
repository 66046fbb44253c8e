"""Shared test fixtures."""

from pathlib import Path

import pytest
import yaml
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from intentswap.config.defaults import DEFAULT_TOKENS
from intentswap.config.schema import EngineConfig
from intentswap.config.tokens import TokenRegistry
from intentswap.ingest.relayer_client import RelayerClientError
from intentswap.signing.local_signer import LocalKeySigner
from intentswap.signing.oracle import WalletRef
from intentswap.tests.fakes import TEST_SEED, FakeChain, FakeClock, FakeRelayer


@pytest.fixture
def default_config() -> EngineConfig:
    return EngineConfig(tokens=DEFAULT_TOKENS)


@pytest.fixture
def registry() -> TokenRegistry:
    return TokenRegistry(DEFAULT_TOKENS)


@pytest.fixture
def private_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.from_private_bytes(TEST_SEED)


@pytest.fixture
def local_signer(private_key) -> LocalKeySigner:
    return LocalKeySigner({"default": private_key})


@pytest.fixture
def wallet(local_signer) -> WalletRef:
    return WalletRef(handle="default", address=local_signer.address("default"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_relayer() -> FakeRelayer:
    return FakeRelayer()


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def relayer_down() -> RelayerClientError:
    return RelayerClientError("Request failed: connection refused")


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    data = {
        "relayer": {"base_url": "http://relayer.test"},
        "swap": {"slippage_bps": 300},
        "tracking": {"timeout_seconds": 30},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path

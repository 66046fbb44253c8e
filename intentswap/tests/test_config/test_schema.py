"""Tests for config schema validation."""

import pytest
from pydantic import ValidationError

from intentswap.config.schema import (
    INTENT_SWAP_ADDRESS,
    EngineConfig,
    SwapConfig,
    TokenConfig,
    TrackingConfig,
)


class TestDefaults:
    def test_engine_defaults(self):
        config = EngineConfig()
        assert config.chain.contract_address == INTENT_SWAP_ADDRESS
        assert config.swap.slippage_bps == 500
        assert config.alerts.enabled is False
        assert config.tokens == []

    def test_recency_window_defaults_to_twice_timeout(self):
        assert TrackingConfig(timeout_seconds=40).effective_recency_window == 80
        assert TrackingConfig(recency_window_seconds=10).effective_recency_window == 10


class TestValidation:
    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_slippage_bounds(self, bps):
        with pytest.raises(ValidationError):
            SwapConfig(slippage_bps=bps)

    def test_validity_window_positive(self):
        with pytest.raises(ValidationError):
            SwapConfig(validity_window_seconds=0)

    def test_token_decimals_bounds(self):
        with pytest.raises(ValidationError):
            TokenConfig(symbol="X", type="0x1::x::X", decimals=19)

    def test_token_frozen(self):
        token = TokenConfig(symbol="X", type="0x1::x::X")
        with pytest.raises(ValidationError):
            token.symbol = "Y"

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            EngineConfig(swap={"slippage": 5})

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            EngineConfig(signing={"backend": "hsm"})

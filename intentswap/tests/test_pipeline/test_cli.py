"""Tests for CLI commands."""

from pathlib import Path

import pytest
import respx
import yaml
from httpx import Response

from intentswap.cli import main
from intentswap.config.loader import load_config
from intentswap.tests.fakes import MAKER, MOVE_TYPE, USDC_TYPE, activity_entry

RELAYER = "http://relayer.test"


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "intentswap.yaml"
    path.write_text(yaml.dump({
        "relayer": {"base_url": RELAYER},
        "wallet": {"handle": "default", "address": MAKER},
    }))
    return path


class TestCLI:
    def test_no_command_returns_1(self, capsys):
        assert main([]) == 1

    def test_config_show(self, tmp_path: Path, capsys):
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("")
        assert main(["--config", str(config_path), "config", "show"]) == 0
        out = capsys.readouterr().out
        assert "contract_address" in out
        assert "# hash:" in out

    def test_config_set_persists(self, config_path: Path, capsys):
        result = main(["--config", str(config_path), "config", "set", "tracking.timeout_seconds=30"])
        assert result == 0
        assert "Set tracking.timeout_seconds = 30.0" in capsys.readouterr().out
        reloaded = load_config(config_path)
        assert reloaded.tracking.timeout_seconds == 30.0
        assert reloaded.relayer.base_url == RELAYER

    def test_config_set_unknown_key(self, config_path: Path, capsys):
        assert main(["--config", str(config_path), "config", "set", "swap.nope=1"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_config_set_requires_equals(self, config_path: Path, capsys):
        assert main(["--config", str(config_path), "config", "set", "swap.slippage_bps"]) == 1

    @respx.mock
    def test_quote(self, config_path: Path, capsys):
        respx.get(f"{RELAYER}/prices").mock(
            return_value=Response(200, json={MOVE_TYPE: 0.5, USDC_TYPE: 1.0})
        )
        assert main(["--config", str(config_path), "quote", "MOVE", "USDC.e", "10"]) == 0
        out = capsys.readouterr().out
        assert "Rate: 1 MOVE = 0.500000 USDC.e" in out
        assert "~5.0000 USDC.e" in out

    @respx.mock
    def test_quote_unknown_token(self, config_path: Path, capsys):
        respx.get(f"{RELAYER}/prices").mock(return_value=Response(200, json={}))
        assert main(["--config", str(config_path), "quote", "MOVE", "DOGE", "1"]) == 1
        assert "MOVE, WETH.e, USDC.e, USDT.e" in capsys.readouterr().out

    def test_swap_without_key(self, config_path: Path, capsys, monkeypatch):
        monkeypatch.delenv("INTENTSWAP_PRIVATE_KEY", raising=False)
        assert main(["--config", str(config_path), "swap", "MOVE", "USDC.e", "1"]) == 1
        assert "INTENTSWAP_PRIVATE_KEY not set" in capsys.readouterr().err

    @respx.mock
    def test_orders_empty(self, config_path: Path, capsys, monkeypatch):
        monkeypatch.setenv("INTENTSWAP_PRIVATE_KEY", "11" * 32)
        respx.get(f"{RELAYER}/orders").mock(return_value=Response(200, json={"orders": []}))
        respx.get(f"{RELAYER}/activity").mock(return_value=Response(200, json={"orders": []}))
        assert main(["--config", str(config_path), "orders"]) == 0
        assert "No orders found" in capsys.readouterr().out

    @respx.mock
    def test_status_not_found(self, config_path: Path, capsys, monkeypatch):
        monkeypatch.setenv("INTENTSWAP_PRIVATE_KEY", "11" * 32)
        respx.get(f"{RELAYER}/orders").mock(return_value=Response(200, json={"orders": []}))
        respx.get(f"{RELAYER}/activity").mock(return_value=Response(200, json={"orders": []}))
        assert main(["--config", str(config_path), "status", "0xabc"]) == 1
        assert "No order found for 0xabc" in capsys.readouterr().out

    @respx.mock
    def test_activity(self, config_path: Path, capsys):
        entry = activity_entry("0xaa", timestamp=0)
        respx.get(f"{RELAYER}/activity").mock(
            return_value=Response(200, json={"orders": [entry.model_dump(by_alias=True)]})
        )
        assert main(["--config", str(config_path), "activity", "--limit", "3"]) == 0
        out = capsys.readouterr().out
        assert "Recent Swaps" in out
        assert "1 MOVE -> 4.75 USDC.e" in out

    @respx.mock
    def test_watch_bounded(self, tmp_path: Path):
        config_path = tmp_path / "watch.yaml"
        config_path.write_text(yaml.dump({
            "relayer": {"base_url": RELAYER},
            "monitor": {"poll_interval_seconds": 0.01},
        }))
        route = respx.get(f"{RELAYER}/activity").mock(
            return_value=Response(200, json={"orders": []})
        )
        assert main(["--config", str(config_path), "watch", "--polls", "2"]) == 0
        assert route.call_count == 2

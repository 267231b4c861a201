"""Tests for CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cryptodash.cli.commands import cli
from cryptodash.data.service import MarketDataService
from cryptodash.errors import UpstreamUnavailableError
from cryptodash.upstream.fake.source import FakeMarketSource


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def patched_service(service: MarketDataService) -> Iterator[MarketDataService]:
    with (
        patch("cryptodash.cli.commands.build_service", return_value=service),
        patch("cryptodash.cli.commands.setup_logging"),
    ):
        yield service


class TestCliHelp:
    def test_cli_help_shows_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("markets", "history", "ohlc", "search", "indicators", "config"):
            assert command in result.output

    def test_ohlc_help_shows_options(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ohlc", "--help"])
        assert result.exit_code == 0
        assert "--provider" in result.output
        assert "--days" in result.output


class TestMarketsCommand:
    def test_lists_coins(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["markets"])
        assert result.exit_code == 0, result.output
        assert "BTC" in result.output
        assert "Ethereum" in result.output
        assert "[live]" in result.output

    def test_invalid_per_page(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["markets", "--per-page", "500"])
        assert result.exit_code == 1
        assert "per_page" in result.output

    def test_upstream_failure_is_friendly(
        self,
        runner: CliRunner,
        patched_service: MarketDataService,
        gecko: FakeMarketSource,
    ) -> None:
        gecko.fail_with(UpstreamUnavailableError("coingecko unreachable"))
        result = runner.invoke(cli, ["markets"])
        assert result.exit_code == 1
        assert "coingecko unreachable" in result.output


class TestHistoryCommand:
    def test_history(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["history", "bitcoin", "--days", "30"])
        assert result.exit_code == 0, result.output
        assert "Points:  60" in result.output

    def test_invalid_days_rejected_by_click(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["history", "bitcoin", "--days", "90"])
        assert result.exit_code == 2


class TestOhlcCommand:
    def test_ohlc_coinbase(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["ohlc", "bitcoin"])
        assert result.exit_code == 0, result.output
        assert "Provider: coinbase" in result.output
        assert "Candles: 3" in result.output

    def test_ohlc_forced_coingecko(
        self, runner: CliRunner, patched_service: MarketDataService
    ) -> None:
        result = runner.invoke(cli, ["ohlc", "bitcoin", "--provider", "coingecko"])
        assert result.exit_code == 0, result.output
        assert "Provider: coingecko" in result.output


class TestSearchCommand:
    def test_search(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["search", "sol"])
        assert result.exit_code == 0, result.output
        assert "solana" in result.output

    def test_no_matches(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["search", "zzzz"])
        assert "No matches." in result.output


class TestIndicatorsCommand:
    def test_all_studies(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["indicators", "bitcoin", "--days", "7"])
        assert result.exit_code == 0, result.output
        assert "RSI(14)" in result.output
        assert "SMA(20/50)" in result.output
        assert "MACD(12,26,9)" in result.output
        assert "BB(20,2)" in result.output

    def test_selected_study(self, runner: CliRunner, patched_service: MarketDataService) -> None:
        result = runner.invoke(cli, ["indicators", "bitcoin", "--study", "rsi"])
        assert result.exit_code == 0, result.output
        assert "RSI(" in result.output
        assert "MACD(" not in result.output


class TestConfigCommand:
    def test_config_shows_defaults(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        out = result.output.lower()
        assert "upstream" in out
        assert "cache" in out
        assert "freshness" in out

    def test_config_shows_env_override(self, runner: CliRunner) -> None:
        with patch.dict("os.environ", {"CRYPTODASH_LOG_LEVEL": "DEBUG"}):
            result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        assert "DEBUG" in result.output

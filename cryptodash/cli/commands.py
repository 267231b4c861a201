"""Click CLI commands for cryptodash."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from cryptodash.config import AppConfig
from cryptodash.data.cache import CachedResult
from cryptodash.data.service import MarketDataService
from cryptodash.engine.calculator import ALL_STUDIES, Study
from cryptodash.engine.indicators import latest_value, rsi_status
from cryptodash.errors import DashboardError
from cryptodash.upstream.types import ProviderPreference
from cryptodash.utils.logging import new_request_id, setup_logging
from cryptodash.utils.time import format_timestamp

T = TypeVar("T")

TIMEFRAME_CHOICE = click.Choice(["1", "7", "30", "365"])


def build_service(config: AppConfig) -> MarketDataService:
    return MarketDataService.from_config(config)


def _run(action: Callable[[MarketDataService], Awaitable[T]]) -> T:
    """Run one service call in a fresh event loop with logging configured."""
    config = AppConfig()
    setup_logging(config.log_level, config.log_format)
    new_request_id()

    async def _main() -> T:
        async with build_service(config) as service:
            return await action(service)

    try:
        return asyncio.run(_main())
    except DashboardError as e:
        raise click.ClickException(str(e)) from e


def _fmt(value: float | None, fmt: str = ",.2f") -> str:
    return "-" if value is None else format(value, fmt)


def _echo_meta(result: CachedResult[object]) -> None:
    state = "stale" if result.stale else ("cached" if result.cached else "live")
    line = f"[{state}] fetched {format_timestamp(result.fetched_at)}"
    if result.freshness is not None and result.freshness.stale_reason:
        line += f" ({result.freshness.stale_reason})"
    click.echo(line)


@click.group()
def cli() -> None:
    """cryptodash: cached crypto market data and technical indicators."""


@cli.command()
@click.option("--vs", "vs_currency", default=None, help="Quote currency (default from config).")
@click.option("--per-page", type=int, default=None, help="Coins per page (1-250).")
@click.option("--page", type=int, default=1, show_default=True, help="Page number.")
@click.option("--ids", default=None, help="Comma-separated coin ids.")
def markets(
    vs_currency: str | None,
    per_page: int | None,
    page: int,
    ids: str | None,
) -> None:
    """List coins ranked by market cap."""
    id_list = ids.split(",") if ids else None
    result = _run(lambda s: s.get_market_list(vs_currency, per_page, page, id_list))

    _echo_meta(result)
    click.echo(f"{'#':>4}  {'Symbol':<8} {'Name':<24} {'Price':>16} {'24h %':>8}")
    for coin in result.data:
        rank = coin.market_cap_rank if coin.market_cap_rank is not None else "-"
        click.echo(
            f"{rank:>4}  {coin.symbol.upper():<8} {coin.name[:24]:<24} "
            f"{_fmt(coin.current_price):>16} "
            f"{_fmt(coin.price_change_percentage_24h):>8}"
        )


@cli.command()
@click.argument("coin_id")
@click.option("--days", type=TIMEFRAME_CHOICE, default=None, help="Range in days.")
@click.option("--vs", "vs_currency", default=None, help="Quote currency.")
def history(coin_id: str, days: str | None, vs_currency: str | None) -> None:
    """Show the price history summary for COIN_ID."""
    result = _run(lambda s: s.get_history(coin_id, days, vs_currency))

    _echo_meta(result)
    prices = result.data.prices
    click.echo(f"Points:  {len(prices)}")
    if prices:
        click.echo(f"First:   {format_timestamp(prices[0].timestamp)}  {_fmt(prices[0].value)}")
        click.echo(f"Last:    {format_timestamp(prices[-1].timestamp)}  {_fmt(prices[-1].value)}")


@cli.command()
@click.argument("coin_id")
@click.option("--days", type=TIMEFRAME_CHOICE, default=None, help="Range in days.")
@click.option("--vs", "vs_currency", default=None, help="Quote currency.")
@click.option(
    "--provider",
    type=click.Choice([p.value for p in ProviderPreference]),
    default=ProviderPreference.AUTO.value,
    show_default=True,
    help="Preferred candle provider.",
)
@click.option("--limit", type=int, default=10, show_default=True, help="Candles to print.")
def ohlc(
    coin_id: str,
    days: str | None,
    vs_currency: str | None,
    provider: str,
    limit: int,
) -> None:
    """Show the most recent OHLC candles for COIN_ID."""
    result = _run(lambda s: s.get_ohlc(coin_id, days, vs_currency, provider))

    _echo_meta(result)
    data = result.data
    click.echo(
        f"Provider: {data.provider.value}  Granularity: {data.granularity}  "
        f"Candles: {len(data.candles)}"
    )
    for c in data.candles[-limit:] if limit > 0 else ():
        click.echo(
            f"{format_timestamp(c.timestamp)}  O {_fmt(c.open)}  H {_fmt(c.high)}  "
            f"L {_fmt(c.low)}  C {_fmt(c.close)}"
        )


@cli.command()
@click.argument("query", required=False, default="")
def search(query: str) -> None:
    """Search coins by name, symbol or id."""
    result = _run(lambda s: s.search(query))

    _echo_meta(result)
    if not result.data:
        click.echo("No matches.")
    for coin in result.data:
        click.echo(f"{coin.id:<32} {coin.symbol.upper():<10} {coin.name}")


@cli.command()
@click.argument("coin_id")
@click.option("--days", type=TIMEFRAME_CHOICE, default=None, help="Range in days.")
@click.option("--vs", "vs_currency", default=None, help="Quote currency.")
@click.option(
    "--study",
    "studies",
    multiple=True,
    type=click.Choice([s.value for s in Study]),
    help="Study to compute (repeatable; default: all).",
)
def indicators(
    coin_id: str,
    days: str | None,
    vs_currency: str | None,
    studies: tuple[str, ...],
) -> None:
    """Compute technical indicators over COIN_ID's price history."""
    enabled = studies or ALL_STUDIES
    history_result, ind = _run(
        lambda s: s.get_indicators(coin_id, days, vs_currency, enabled)
    )

    _echo_meta(history_result)
    click.echo(f"Timeframe: {ind.timeframe.label}  Samples: {ind.sample_count}")
    if ind.rsi is not None and ind.rsi_config is not None:
        value = latest_value(ind.rsi)
        status = rsi_status(value).value if value is not None else "n/a"
        click.echo(f"RSI({ind.rsi_config.period}):  {_fmt(value)}  {status}")
    if ind.sma is not None and ind.sma_config is not None:
        click.echo(
            f"SMA({ind.sma_config.short_period}/{ind.sma_config.long_period}):  "
            f"{_fmt(latest_value(ind.sma.short))} / {_fmt(latest_value(ind.sma.long))}"
        )
    if ind.macd is not None and ind.macd_config is not None:
        conf = ind.macd_config
        click.echo(
            f"MACD({conf.fast_period},{conf.slow_period},{conf.signal_period}):  "
            f"{_fmt(latest_value(ind.macd.macd_line), '.4f')}  "
            f"signal {_fmt(latest_value(ind.macd.signal_line), '.4f')}  "
            f"hist {_fmt(latest_value(ind.macd.histogram), '.4f')}"
        )
    if ind.bollinger is not None and ind.bollinger_config is not None:
        bb = ind.bollinger
        click.echo(
            f"BB({ind.bollinger_config.period},{ind.bollinger_config.multiplier:g}):  "
            f"{_fmt(latest_value(bb.lower))} / {_fmt(latest_value(bb.middle))} / "
            f"{_fmt(latest_value(bb.upper))}"
        )


@cli.command()
def config() -> None:
    """Show current configuration."""
    cfg = AppConfig()

    click.echo("=== cryptodash Configuration ===\n")

    click.echo(f"Log Level:    {cfg.log_level}")
    click.echo(f"Log Format:   {cfg.log_format}")
    click.echo("")

    click.echo("[Upstream]")
    click.echo(f"  CoinGecko:     {cfg.upstream.coingecko_base_url}")
    click.echo(f"  API Key:       {'set' if cfg.upstream.coingecko_api_key else 'not set'}")
    click.echo(f"  Coinbase:      {cfg.upstream.coinbase_base_url}")
    click.echo(f"  Timeout:       {cfg.upstream.timeout_seconds}s")
    click.echo(f"  Max Attempts:  {cfg.upstream.max_attempts}")
    click.echo(f"  Backoff:       {cfg.upstream.initial_backoff_ms}ms")
    click.echo("")

    click.echo("[Cache TTL ms]")
    click.echo(f"  Markets:       {cfg.cache.markets_ttl_ms}")
    click.echo(f"  History:       {cfg.cache.history_ttl_ms}")
    click.echo(f"  OHLC:          {cfg.cache.ohlc_ttl_ms}")
    click.echo(f"  Search:        {cfg.cache.search_ttl_ms}")
    click.echo(f"  Max Entries:   {cfg.cache.max_entries}")
    click.echo("")

    click.echo("[Freshness]")
    click.echo(f"  List Threshold:   {cfg.freshness.coins_list_threshold_ms}ms")
    click.echo(f"  Chart Threshold:  {cfg.freshness.chart_data_threshold_ms}ms")
    click.echo(f"  Max Price Drift:  {cfg.freshness.max_price_drift_pct}%")
    click.echo("")

    click.echo(f"Currency:     {cfg.display.default_currency}")
    click.echo(f"Timeframe:    {cfg.display.default_timeframe}")


if __name__ == "__main__":
    cli()

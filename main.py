# main.py
"""Command line entry point: hammer one Finnhub endpoint and report QPS."""

import asyncio
import logging
import sys

import click
import httpx
from pydantic import ValidationError

from config import DEFAULT_KEY_FILE, BenchmarkConfig
from endpoints import DEFAULT_METRIC, ENDPOINTS, build_operation
from finnhub_client import BASE_URL, FinnhubClient, FinnhubError, LazyClient, load_api_key
from harness import BenchmarkAborted, BenchmarkHarness, format_summary
from logs import configure_logging

logger = logging.getLogger(__name__)


def make_provider(key_file: str, base_url: str = BASE_URL, transport=None) -> LazyClient:
    def factory() -> FinnhubClient:
        return FinnhubClient(load_api_key(key_file), base_url=base_url, transport=transport)

    return LazyClient(factory)


def make_offline_provider() -> LazyClient:
    """Point the client at the in-process fake API instead of finnhub.io."""
    try:
        import fake_finnhub
    except ImportError as exc:
        raise click.ClickException(
            "--offline needs fastapi; install the 'fake' extra"
        ) from exc

    def factory() -> FinnhubClient:
        transport = httpx.ASGITransport(app=fake_finnhub.app)
        return FinnhubClient(fake_finnhub.API_KEY, base_url="http://fake/api/v1", transport=transport)

    return LazyClient(factory)


async def run_benchmark(endpoint: str, provider: LazyClient, config: BenchmarkConfig, metric: str = DEFAULT_METRIC):
    operation = build_operation(endpoint, provider, metric=metric)
    harness = BenchmarkHarness(operation, config)
    try:
        return await harness.run()
    finally:
        await provider.aclose()


@click.command()
@click.option("--endpoint", type=click.Choice(sorted(ENDPOINTS)), default="quote", show_default=True,
              help="Finnhub endpoint to benchmark.")
@click.option("--key-file", envvar="FINNHUB_KEY_FILE", default=DEFAULT_KEY_FILE, show_default=True,
              help="File holding the Finnhub API key.")
@click.option("--workers", type=int, default=1000, show_default=True)
@click.option("--items", type=int, default=100_000, show_default=True)
@click.option("--symbol", "symbols", multiple=True, default=("AAPL",), show_default=True,
              help="Symbol to request; repeat to cycle through several.")
@click.option("--report-every", type=int, default=100, show_default=True)
@click.option("--queue-size", type=int, default=10, show_default=True)
@click.option("--request-timeout", type=float, default=None, help="Per-request timeout in seconds.")
@click.option("--deadline", type=float, default=None, help="Cancel the whole run after this many seconds.")
@click.option("--fail-fast/--fail-soft", default=False, show_default=True,
              help="Abort on the first failed request instead of counting it.")
@click.option("--metric", default=DEFAULT_METRIC, show_default=True, help="Metric field read in bf mode.")
@click.option("--offline", is_flag=True, default=False,
              help="Benchmark the bundled fake API in-process; no key file or network needed.")
@click.option("--base-url", envvar="FINNHUB_BASE_URL", default=BASE_URL, show_default=True)
@click.option("--log-level", envvar="LOG_LEVEL", default="WARNING", show_default=True)
def main(endpoint, key_file, workers, items, symbols, report_every, queue_size,
         request_timeout, deadline, fail_fast, metric, offline, base_url, log_level):
    configure_logging(log_level)

    try:
        config = BenchmarkConfig(
            worker_count=workers,
            item_count=items,
            symbols=list(symbols),
            report_every=report_every,
            fail_fast=fail_fast,
            queue_size=queue_size,
            request_timeout=request_timeout,
            deadline=deadline,
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))
    logger.info("benchmarking %s endpoint: %s", endpoint, config.model_dump())

    provider = make_offline_provider() if offline else make_provider(key_file, base_url)
    try:
        # build up front so a bad key file stops us before any request
        provider.get()
    except FinnhubError as e:
        click.echo(f"initialization failed: {e}", err=True)
        sys.exit(2)

    try:
        result = asyncio.run(run_benchmark(endpoint, provider, config, metric=metric))
    except BenchmarkAborted as e:
        click.echo(f"err = {e.error} (symbol {e.symbol})")
        click.echo(format_summary(e.result))
        sys.exit(1)

    click.echo(format_summary(result))


if __name__ == "__main__":
    main()

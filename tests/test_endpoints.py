"""Endpoint operations against the in-process fake Finnhub app.

We use httpx.ASGITransport so the real client code path runs end to end
without touching the network.
"""

import asyncio

import httpx
import pytest

import fake_finnhub
from config import BenchmarkConfig
from endpoints import (
	build_operation,
	get_company_profile,
	get_stock_basic_financials,
	get_stock_candles,
	get_stock_quote,
)
from finnhub_client import FinnhubClient, FinnhubStatusError, LazyClient, MissingFieldError
from harness import BenchmarkHarness


def fake_client(api_key: str = fake_finnhub.API_KEY) -> FinnhubClient:
	transport = httpx.ASGITransport(app=fake_finnhub.app)
	return FinnhubClient(api_key, base_url="http://fake/api/v1", transport=transport)


@pytest.mark.asyncio
async def test_quote_returns_formatted_price():
	async with fake_client() as client:
		price = await get_stock_quote(client, "AAPL")
	assert float(price) > 0
	assert len(price.split(".")[1]) == 2


@pytest.mark.asyncio
async def test_quote_unknown_symbol_is_missing_field():
	async with fake_client() as client:
		with pytest.raises(MissingFieldError) as info:
			await get_stock_quote(client, "NOPE")
	assert info.value.symbol == "NOPE"


@pytest.mark.asyncio
async def test_candles_use_15_minute_trailing_day():
	seen = {}

	def handler(request):
		params = request.url.params
		seen.update(resolution=params["resolution"], start=int(params["from"]), end=int(params["to"]))
		return httpx.Response(200, json={"c": [101.234, 102.0], "s": "ok"})

	client = FinnhubClient("k", base_url="http://fake", transport=httpx.MockTransport(handler))
	async with client:
		close = await get_stock_candles(client, "AAPL")

	assert close == "101.23"
	assert seen["resolution"] == "15"
	assert seen["end"] - seen["start"] == 24 * 60 * 60


@pytest.mark.asyncio
async def test_candles_no_data_is_missing_field():
	async with fake_client() as client:
		assert float(await get_stock_candles(client, "MSFT")) > 0
		with pytest.raises(MissingFieldError):
			await get_stock_candles(client, "NOPE")


@pytest.mark.asyncio
async def test_basic_financials_metric_lookup():
	async with fake_client() as client:
		high = await get_stock_basic_financials(client, "AAPL")
		assert float(high) > 0
		assert await get_stock_basic_financials(client, "AAPL", metric="10DayAverageTradingVolume") == ""
		with pytest.raises(MissingFieldError):
			await get_stock_basic_financials(client, "NOPE")


@pytest.mark.asyncio
async def test_company_profile_name():
	async with fake_client() as client:
		assert await get_company_profile(client, "AAPL") == "Apple Inc"
		with pytest.raises(MissingFieldError):
			await get_company_profile(client, "NOPE")


@pytest.mark.asyncio
async def test_bad_token_is_status_error():
	async with fake_client(api_key="wrong") as client:
		with pytest.raises(FinnhubStatusError) as info:
			await get_stock_quote(client, "AAPL")
	assert info.value.status_code == 401


def test_build_operation_rejects_unknown_mode():
	with pytest.raises(ValueError):
		build_operation("news", LazyClient(fake_client))


@pytest.mark.asyncio
async def test_workers_share_one_lazily_built_client():
	built = []

	def factory():
		built.append(1)
		return fake_client()

	provider = LazyClient(factory)
	operation = build_operation("quote", provider)
	cfg = BenchmarkConfig(worker_count=20, item_count=200, symbols=["AAPL", "MSFT"], report_every=50)
	try:
		result = await BenchmarkHarness(operation, cfg).run()
	finally:
		await provider.aclose()

	assert len(built) == 1
	assert result.total == 200
	assert result.succeeded == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", ["quote", "candle", "bf", "profile"])
async def test_every_mode_runs_fail_soft(mode):
	provider = LazyClient(fake_client)
	operation = build_operation(mode, provider)
	cfg = BenchmarkConfig(worker_count=5, item_count=20, symbols=["AAPL", "NOPE"])
	try:
		result = await asyncio.wait_for(BenchmarkHarness(operation, cfg).run(), timeout=10)
	finally:
		await provider.aclose()

	assert result.total == 20
	assert result.succeeded == 10
	assert result.failed == 10

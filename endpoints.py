"""Benchmark operations, one per Finnhub endpoint.

Each operation turns one API call into a short normalized string, or raises
``MissingFieldError`` when the field we care about is absent.
"""

import time
from functools import partial
from typing import Awaitable, Callable, Dict

from finnhub_client import FinnhubClient, LazyClient, MissingFieldError

Operation = Callable[[str], Awaitable[str]]

CANDLE_RESOLUTION = "15"  # minutes
CANDLE_WINDOW_S = 24 * 60 * 60
DEFAULT_METRIC = "52WeekHigh"


async def get_stock_quote(client: FinnhubClient, symbol: str) -> str:
    quote = await client.quote(symbol)
    if quote.c is None:
        raise MissingFieldError("current price", symbol)
    return f"{quote.c:3.2f}"


async def get_stock_candles(client: FinnhubClient, symbol: str) -> str:
    end = int(time.time())
    candles = await client.stock_candles(symbol, CANDLE_RESOLUTION, end - CANDLE_WINDOW_S, end)
    # "no_data" responses come back without the price arrays
    if not candles.c:
        raise MissingFieldError("close price", symbol)
    return f"{candles.c[0]:3.2f}"


async def get_stock_basic_financials(
    client: FinnhubClient, symbol: str, metric: str = DEFAULT_METRIC
) -> str:
    bf = await client.basic_financials(symbol, metric="all")
    if bf.metric is None:
        raise MissingFieldError("metric", symbol)
    if metric not in bf.metric:
        return ""
    return str(bf.metric[metric])


async def get_company_profile(client: FinnhubClient, symbol: str) -> str:
    profile = await client.company_profile(symbol)
    if not profile.name:
        raise MissingFieldError("company name", symbol)
    return profile.name


ENDPOINTS: Dict[str, Callable[..., Awaitable[str]]] = {
    "quote": get_stock_quote,
    "candle": get_stock_candles,
    "bf": get_stock_basic_financials,
    "profile": get_company_profile,
}


def build_operation(mode: str, provider: LazyClient, metric: str = DEFAULT_METRIC) -> Operation:
    """Bind an endpoint to a lazily constructed client.

    The returned coroutine function takes only the symbol, which is the
    shape the harness expects.
    """
    try:
        func = ENDPOINTS[mode]
    except KeyError:
        raise ValueError(f"unknown endpoint {mode!r}, expected one of {sorted(ENDPOINTS)}") from None
    if mode == "bf":
        func = partial(func, metric=metric)

    async def operation(symbol: str) -> str:
        return await func(provider.get(), symbol)

    return operation

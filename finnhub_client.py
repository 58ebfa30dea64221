"""Thin async client for the Finnhub REST API.

Only the four endpoints the benchmark exercises are wrapped. Each method
performs exactly one GET and returns the matching pydantic model; deciding
whether a field is missing is left to the caller.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

import httpx

from models import BasicFinancials, Candles, CompanyProfile, Quote

logger = logging.getLogger(__name__)

BASE_URL = "https://finnhub.io/api/v1"
TOKEN_HEADER = "X-Finnhub-Token"


class FinnhubError(Exception):
    """Base class for every per-request failure."""


class CredentialError(FinnhubError):
    """The API key file could not be read."""


class MissingFieldError(FinnhubError):
    def __init__(self, field: str, symbol: str):
        self.field = field
        self.symbol = symbol
        super().__init__(f"{field} is missing for symbol {symbol}")


class FinnhubStatusError(FinnhubError):
    def __init__(self, status_code: int, path: str, detail: str = ""):
        self.status_code = status_code
        self.path = path
        message = f"{path} returned HTTP {status_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class FinnhubTransportError(FinnhubError):
    """Connection, DNS or timeout failure below HTTP."""


class FinnhubProtocolError(FinnhubError):
    """The response body was not the JSON object we expected."""


def load_api_key(path: str) -> str:
    try:
        with open(path, "r") as f:
            key = f.read()
    except OSError as exc:
        raise CredentialError(f"cannot read API key from {path}: {exc}") from exc
    key = key.rstrip("\r\n")
    if not key.strip():
        raise CredentialError(f"API key file {path} is empty")
    return key


class FinnhubClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={TOKEN_HEADER: api_key},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "FinnhubClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            r = await self._client.get(path, params=params)
        except httpx.TransportError as exc:
            raise FinnhubTransportError(f"{path}: {exc.__class__.__name__}: {exc}") from exc

        if r.status_code != 200:
            raise FinnhubStatusError(r.status_code, path, r.text[:200])

        try:
            data = r.json()
        except ValueError as exc:
            raise FinnhubProtocolError(f"{path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise FinnhubProtocolError(f"{path} returned {type(data).__name__}, expected an object")
        return data

    async def quote(self, symbol: str) -> Quote:
        return Quote.model_validate(await self._get("/quote", {"symbol": symbol}))

    async def stock_candles(self, symbol: str, resolution: str, start: int, end: int) -> Candles:
        data = await self._get(
            "/stock/candle",
            {"symbol": symbol, "resolution": resolution, "from": start, "to": end},
        )
        return Candles.model_validate(data)

    async def basic_financials(self, symbol: str, metric: str = "all") -> BasicFinancials:
        data = await self._get("/stock/metric", {"symbol": symbol, "metric": metric})
        return BasicFinancials.model_validate(data)

    async def company_profile(self, symbol: str) -> CompanyProfile:
        return CompanyProfile.model_validate(await self._get("/stock/profile2", {"symbol": symbol}))


class LazyClient:
    """Build a client on first use, exactly once.

    ``get()`` may be called concurrently from many workers (or threads); the
    factory runs a single time and every caller receives the same instance.
    Factory errors propagate and leave the guard unset so a later call can
    try again.
    """

    def __init__(self, factory: Callable[[], FinnhubClient]):
        self._factory = factory
        self._client: Optional[FinnhubClient] = None
        self._lock = threading.Lock()

    @property
    def constructed(self) -> bool:
        return self._client is not None

    def get(self) -> FinnhubClient:
        client = self._client
        if client is not None:
            return client
        with self._lock:
            if self._client is None:
                self._client = self._factory()
                logger.info("Finnhub client constructed")
            return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

# fake_finnhub.py
# In-process stand-in for the Finnhub REST API, used for offline benchmark
# runs and tests. Prices follow a noisy random walk per symbol.
#
#   transport = httpx.ASGITransport(app=fake_finnhub.app)
#   client = FinnhubClient("key", base_url="http://fake/api/v1", transport=transport)

import random
import time
from typing import Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, status

API_KEY = "test-key"

# symbol -> (company name, base price)
COMPANIES = {
    "AAPL": ("Apple Inc", 190.0),
    "MSFT": ("Microsoft Corp", 410.0),
    "XYZ": ("Block Inc", 70.0),
}


class PriceWalk:
    def __init__(self, base_price: float, jitter: float = 0.08):
        self.price = float(base_price)
        self.jitter = jitter
        self.high = self.price

    def step(self) -> float:
        drift = random.uniform(-0.02, 0.02)
        shock = random.gauss(0.0, self.jitter)
        self.price = max(0.01, self.price * (1.0 + drift * 1e-3) + shock)
        self.high = max(self.high, self.price)
        return round(self.price, 6)


PRICES: Dict[str, PriceWalk] = {sym: PriceWalk(price) for sym, (_, price) in COMPANIES.items()}


def require_token(x_finnhub_token: Optional[str] = Header(None)):
    if x_finnhub_token != API_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please use an API key.")


router = APIRouter(prefix="/api/v1", dependencies=[Depends(require_token)])


@router.get("/quote")
async def quote(symbol: str):
    walk = PRICES.get(symbol.upper())
    if walk is None:
        # Finnhub answers unknown symbols with 200 and no data
        return {}
    prev = walk.price
    price = walk.step()
    return {
        "c": price,
        "h": walk.high,
        "l": min(prev, price),
        "o": prev,
        "pc": prev,
        "d": round(price - prev, 6),
        "dp": round((price - prev) / prev * 100.0, 6),
        "t": int(time.time()),
    }


@router.get("/stock/candle")
async def stock_candle(
    symbol: str,
    resolution: str,
    start: int = Query(..., alias="from"),
    end: int = Query(..., alias="to"),
):
    walk = PRICES.get(symbol.upper())
    if walk is None or end <= start:
        return {"s": "no_data"}
    step = int(resolution) * 60
    ts = list(range(start, end, step))
    closes = [walk.step() for _ in ts]
    return {
        "c": closes,
        "h": [c + 0.05 for c in closes],
        "l": [c - 0.05 for c in closes],
        "o": closes,
        "v": [1000.0] * len(ts),
        "t": ts,
        "s": "ok",
    }


@router.get("/stock/metric")
async def stock_metric(symbol: str, metric: str = "all"):
    walk = PRICES.get(symbol.upper())
    if walk is None:
        return {"metric": None, "metricType": metric, "symbol": symbol}
    return {
        "metric": {"52WeekHigh": round(walk.high, 2), "beta": 1.2},
        "metricType": metric,
        "symbol": symbol.upper(),
    }


@router.get("/stock/profile2")
async def stock_profile(symbol: str):
    company = COMPANIES.get(symbol.upper())
    if company is None:
        return {}
    return {"name": company[0], "ticker": symbol.upper(), "exchange": "NASDAQ", "currency": "USD"}


app = FastAPI(title="Fake Finnhub")
app.include_router(router)

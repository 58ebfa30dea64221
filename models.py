# models.py
from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional, Union


class FinnhubModel(BaseModel):
    # Finnhub adds fields over time; keep whatever we know about
    model_config = ConfigDict(extra="ignore")


# GET /quote
class Quote(FinnhubModel):
    c: Optional[float] = None   # current price
    h: Optional[float] = None
    l: Optional[float] = None
    o: Optional[float] = None
    pc: Optional[float] = None  # previous close
    d: Optional[float] = None
    dp: Optional[float] = None
    t: Optional[int] = None


# GET /stock/candle
class Candles(FinnhubModel):
    c: Optional[List[float]] = None
    h: Optional[List[float]] = None
    l: Optional[List[float]] = None
    o: Optional[List[float]] = None
    v: Optional[List[float]] = None
    t: Optional[List[int]] = None
    s: Optional[str] = None  # "ok" or "no_data"


# GET /stock/metric
class BasicFinancials(FinnhubModel):
    symbol: Optional[str] = None
    metricType: Optional[str] = None
    metric: Optional[Dict[str, Union[float, int, str, None]]] = None


# GET /stock/profile2
class CompanyProfile(FinnhubModel):
    name: Optional[str] = None
    ticker: Optional[str] = None
    exchange: Optional[str] = None
    currency: Optional[str] = None
    country: Optional[str] = None
    ipo: Optional[str] = None
    marketCapitalization: Optional[float] = None
    weburl: Optional[str] = None

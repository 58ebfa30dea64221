"""Runtime configuration for a benchmark run.

Every knob that used to be a constant in the load script (pool size, item
count, symbol, report interval, error policy) lives here and is validated
once, before any worker starts.
"""

from itertools import cycle, islice
from typing import Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_KEY_FILE = "/var/keychain/finnhub.key"


class BenchmarkConfig(BaseModel):
    worker_count: int = Field(1000, ge=1)
    item_count: int = Field(100_000, ge=0)
    symbols: List[str] = Field(default_factory=lambda: ["AAPL"])
    report_every: int = Field(100, ge=1)
    fail_fast: bool = False
    queue_size: int = Field(10, ge=1)
    request_timeout: Optional[float] = Field(None, gt=0)
    deadline: Optional[float] = Field(None, gt=0)

    @field_validator("symbols")
    @classmethod
    def _normalize_symbols(cls, value: List[str]) -> List[str]:
        symbols = [s.strip().upper() for s in value if s and s.strip()]
        if not symbols:
            raise ValueError("at least one symbol is required")
        return symbols

    def items(self) -> Iterator[str]:
        """Yield exactly ``item_count`` work items, cycling through ``symbols``."""
        return islice(cycle(self.symbols), self.item_count)

"""Bounded worker pool that drives one async operation and measures throughput.

A generator task feeds work items into a bounded ``asyncio.Queue``; a fixed
number of worker tasks drain it, each awaiting the injected operation once per
item. Successes and failures land in shared counters, and whichever worker
pushes the success count onto a multiple of ``report_every`` prints a progress
line. Progress lines are telemetry only: their spacing is not guaranteed.

The operation may be a coroutine function or a plain blocking callable. A
blocking callable runs on a thread pool sized to ``worker_count``, so every
worker gets its own thread. Timeouts and cancellation stop waiting on such a
call, but the thread itself finishes the call in the background.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import statistics
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set, Union

from config import BenchmarkConfig

logger = logging.getLogger(__name__)

Operation = Callable[[str], Union[Awaitable[object], object]]


def _is_async(operation: Callable) -> bool:
    return inspect.iscoroutinefunction(operation) or inspect.iscoroutinefunction(
        getattr(operation, "__call__", None)
    )

# Queue closure marker, one per worker
_CLOSED = object()


class OperationTimeout(Exception):
    def __init__(self, symbol: str, timeout: float):
        super().__init__(f"request for {symbol} exceeded {timeout}s")


class OperationCancelled(Exception):
    def __init__(self, symbol: str):
        super().__init__(f"request for {symbol} was cancelled")


@dataclass
class Counters:
    total: int = 0      # items submitted
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0    # drained after a stop without calling the operation


@dataclass
class ProgressReport:
    succeeded: int
    elapsed_s: float
    qps: float
    latency_ms: float
    symbol: str


@dataclass
class BenchmarkResult:
    total: int
    succeeded: int
    failed: int
    skipped: int
    elapsed_s: float
    cancelled: bool = False
    latencies_ms: List[float] = field(default_factory=list, repr=False)

    @property
    def qps(self) -> float:
        return self.succeeded / self.elapsed_s if self.elapsed_s > 0 else 0.0

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.total if self.total else 0.0

    def latency_stats(self) -> dict:
        if not self.latencies_ms:
            return {"min_ms": None, "mean_ms": None, "p95_ms": None, "max_ms": None}
        lat = sorted(self.latencies_ms)
        p95_index = max(int(0.95 * len(lat)) - 1, 0)
        return {
            "min_ms": lat[0],
            "mean_ms": statistics.fmean(lat),
            "p95_ms": lat[p95_index],
            "max_ms": lat[-1],
        }


class BenchmarkAborted(Exception):
    """Raised by ``run()`` in fail-fast mode after the first failed item."""

    def __init__(self, symbol: str, error: BaseException, result: BenchmarkResult):
        self.symbol = symbol
        self.error = error
        self.result = result
        super().__init__(f"aborted on {symbol}: {error.__class__.__name__}: {error}")


class BenchmarkHarness:
    def __init__(self, operation: Operation, config: Optional[BenchmarkConfig] = None):
        self._operation = operation
        self._blocking = not _is_async(operation)
        self._executor: Optional[ThreadPoolExecutor] = None
        self.config = config or BenchmarkConfig()
        self.counters = Counters()
        self.reports: List[ProgressReport] = []

        self._latencies: List[float] = []
        self._inflight: Set[asyncio.Future] = set()
        self._stopped = False
        self._abort: Optional[tuple] = None
        self._start = 0.0
        self._elapsed: Optional[float] = None
        self._queue: Optional[asyncio.Queue] = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    def cancel(self) -> None:
        """Stop submitting work and cancel every in-flight operation.

        Items already queued are drained without calling the operation.
        """
        if self._stopped:
            return
        self._stopped = True
        for op in list(self._inflight):
            op.cancel()

    async def run(self) -> BenchmarkResult:
        cfg = self.config
        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=cfg.queue_size)
        self._start = time.perf_counter()
        if self._blocking:
            self._executor = ThreadPoolExecutor(max_workers=cfg.worker_count, thread_name_prefix="bench")

        workers = [asyncio.create_task(self._worker()) for _ in range(cfg.worker_count)]
        generator = asyncio.create_task(self._generate())
        deadline = loop.call_later(cfg.deadline, self._expire) if cfg.deadline else None

        tasks = [generator, *workers]
        try:
            await asyncio.gather(*tasks)
        finally:
            if deadline is not None:
                deadline.cancel()
            pending = [t for t in tasks if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            await self._reap(list(self._inflight))
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
            self._elapsed = time.perf_counter() - self._start

        result = self.result()
        if self._abort is not None:
            symbol, error = self._abort
            raise BenchmarkAborted(symbol, error, result)
        return result

    def result(self) -> BenchmarkResult:
        elapsed = self._elapsed
        if elapsed is None:
            elapsed = time.perf_counter() - self._start if self._start else 0.0
        return BenchmarkResult(
            total=self.counters.total,
            succeeded=self.counters.succeeded,
            failed=self.counters.failed,
            skipped=self.counters.skipped,
            elapsed_s=elapsed,
            cancelled=self._stopped,
            latencies_ms=list(self._latencies),
        )

    def _expire(self) -> None:
        logger.warning("deadline of %ss reached, cancelling run", self.config.deadline)
        self.cancel()

    async def _generate(self) -> None:
        for symbol in self.config.items():
            if self._stopped:
                break
            # blocks while the queue is full
            await self._queue.put(symbol)
            self.counters.total += 1
        for _ in range(self.config.worker_count):
            await self._queue.put(_CLOSED)

    async def _worker(self) -> None:
        while True:
            symbol = await self._queue.get()
            if symbol is _CLOSED:
                return
            if self._stopped:
                self.counters.skipped += 1
                continue
            await self._process(symbol)

    async def _call(self, symbol: str) -> object:
        if self._blocking:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, self._operation, symbol)
        return await self._operation(symbol)

    async def _reap(self, ops: List[asyncio.Future]) -> None:
        """Cancel ``ops`` and wait until their cleanup has finished."""
        for op in ops:
            op.cancel()
        if ops:
            await asyncio.wait(ops)
        for op in ops:
            self._inflight.discard(op)
            if not op.cancelled():
                op.exception()  # collected, so asyncio does not log it as lost

    async def _process(self, symbol: str) -> None:
        timeout = self.config.request_timeout
        begin = time.perf_counter()
        op = asyncio.ensure_future(self._call(symbol))
        self._inflight.add(op)
        timed_out = False
        try:
            done, _ = await asyncio.wait({op}, timeout=timeout)
            timed_out = not done
        finally:
            if not op.done():
                await self._reap([op])
            self._inflight.discard(op)
        latency_ms = (time.perf_counter() - begin) * 1000.0

        failure = None if op.cancelled() else op.exception()
        if timed_out and not self._stopped:
            error: Optional[BaseException] = OperationTimeout(symbol, timeout)
        elif op.cancelled() or (timed_out and self._stopped):
            error = OperationCancelled(symbol)
        else:
            error = failure

        if error is None:
            self._on_success(symbol, latency_ms, op.result())
        else:
            self._on_failure(symbol, error)

    def _on_success(self, symbol: str, latency_ms: float, value: object) -> None:
        self.counters.succeeded += 1
        self._latencies.append(latency_ms)
        logger.debug("%s -> %s in %.1f ms", symbol, value, latency_ms)
        if self.counters.succeeded % self.config.report_every == 0:
            self._report(symbol, latency_ms)

    def _on_failure(self, symbol: str, error: BaseException) -> None:
        self.counters.failed += 1
        if isinstance(error, OperationCancelled):
            logger.warning("%s", error)
        else:
            logger.error("request for %s failed: %s: %s", symbol, error.__class__.__name__, error)
        if self.config.fail_fast and self._abort is None:
            self._abort = (symbol, error)
            self.cancel()

    def _report(self, symbol: str, latency_ms: float) -> None:
        succeeded = self.counters.succeeded
        elapsed = time.perf_counter() - self._start
        qps = succeeded / elapsed if elapsed > 0 else 0.0
        self.reports.append(ProgressReport(succeeded, elapsed, qps, latency_ms, symbol))
        print(
            f"successfully got {succeeded} results, QPS = {qps:3.2f}, "
            f"request time {latency_ms:.0f} ms for last symbol {symbol}"
        )


def format_summary(result: BenchmarkResult) -> str:
    lines = [f"{result.succeeded}/{result.total} succeed."]
    lines.append(f"failed: {result.failed}, skipped: {result.skipped}, cancelled: {result.cancelled}")
    lines.append(f"duration_s: {result.elapsed_s:.2f}, QPS = {result.qps:3.2f}")
    for k, v in result.latency_stats().items():
        lines.append(f"{k}: {'n/a' if v is None else f'{v:.1f}'}")
    return "\n".join(lines)

#!/usr/bin/env python3
"""
In-process latency benchmark for the admission path.

Runs the service directly against the in-memory store, once per strategy,
and reports p50/p95/p99 evaluation latency and throughput. Concurrent tasks
spread over ``--keys`` keys, so same-key lock contention grows as keys shrink.

Usage:
    python benchmark_latency.py --requests 20000 --concurrent 50 --keys 10
    python benchmark_latency.py --strategy token-bucket --output results.json
"""

import argparse
import asyncio
import json
import statistics
import time
from dataclasses import dataclass

from ratewarden.models import RateLimitPolicy, StrategyKind
from ratewarden.service import RateLimiterService
from ratewarden.store import InMemoryStore


@dataclass
class BenchmarkResult:
    """Benchmark result metrics."""

    strategy: str
    total_requests: int
    allowed_requests: int
    total_duration_seconds: float
    latencies_us: list[float]

    @property
    def throughput(self) -> float:
        """Evaluations per second."""
        return self.total_requests / self.total_duration_seconds

    def percentile(self, p: int) -> float:
        if not self.latencies_us:
            return 0
        ordered = sorted(self.latencies_us)
        return ordered[min(int(len(ordered) * p / 100), len(ordered) - 1)]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "strategy": self.strategy,
            "total_requests": self.total_requests,
            "allowed_requests": self.allowed_requests,
            "blocked_requests": self.total_requests - self.allowed_requests,
            "throughput_eps": round(self.throughput, 2),
            "latency_us": {
                "mean": round(statistics.mean(self.latencies_us), 2),
                "p50": round(self.percentile(50), 2),
                "p95": round(self.percentile(95), 2),
                "p99": round(self.percentile(99), 2),
                "max": round(max(self.latencies_us), 2),
            },
        }


async def run_strategy(
    strategy: StrategyKind, num_requests: int, concurrency: int, num_keys: int
) -> BenchmarkResult:
    policy = RateLimitPolicy(
        name=f"bench-{strategy.value}",
        strategy=strategy,
        max_requests=1000,
        window_ms=1000,
    )
    service = RateLimiterService(store=InMemoryStore())
    latencies: list[float] = []
    allowed = 0
    queue: asyncio.Queue[int] = asyncio.Queue()
    for i in range(num_requests):
        queue.put_nowait(i)

    async def worker() -> None:
        nonlocal allowed
        while True:
            try:
                i = queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            start = time.perf_counter()
            result = await service.evaluate(f"bench:{i % num_keys}", policy)
            latencies.append((time.perf_counter() - start) * 1_000_000)
            if result.admitted:
                allowed += 1

    start_time = time.perf_counter()
    await asyncio.gather(*(worker() for _ in range(concurrency)))
    total_duration = time.perf_counter() - start_time

    return BenchmarkResult(
        strategy=strategy.value,
        total_requests=num_requests,
        allowed_requests=allowed,
        total_duration_seconds=total_duration,
        latencies_us=latencies,
    )


def print_results(result: BenchmarkResult) -> None:
    """Print benchmark results in a formatted table."""
    data = result.to_dict()
    print(f"\n{'=' * 60}")
    print(f"  {result.strategy}")
    print(f"{'=' * 60}")
    print(f"  Evaluations:         {result.total_requests:,}")
    print(f"  Allowed:             {result.allowed_requests:,}")
    print(f"  Throughput:          {result.throughput:,.2f} eval/s")
    for name, value in data["latency_us"].items():
        print(f"  {name.upper():<20} {value:.2f} us")
    print(f"{'=' * 60}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="ratewarden admission benchmark")
    parser.add_argument("--strategy", choices=[k.value for k in StrategyKind], help="Only this strategy")
    parser.add_argument("--requests", type=int, default=10000, help="Evaluations per strategy")
    parser.add_argument("--concurrent", type=int, default=20, help="Concurrent tasks")
    parser.add_argument("--keys", type=int, default=100, help="Distinct keys")
    parser.add_argument("--output", help="Output JSON file")

    args = parser.parse_args()

    strategies = [StrategyKind(args.strategy)] if args.strategy else list(StrategyKind)
    results = {}
    for strategy in strategies:
        result = await run_strategy(strategy, args.requests, args.concurrent, args.keys)
        print_results(result)
        results[strategy.value] = result.to_dict()

    if args.output:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    asyncio.run(main())

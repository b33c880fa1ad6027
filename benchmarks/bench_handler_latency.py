"""Benchmark: VersionedDataHandler latency — per-call p50/p99.

Measures deserialize_with_embedded_version() for a payload stored at the
oldest version, so every call runs the full upgrade chain.

Usage:
    python benchmarks/bench_handler_latency.py
"""
from __future__ import annotations

import json
import time

from vbare import create_versioned_data_handler

_WARMUP: int = 200
_ITERATIONS: int = 10_000
_CHAIN_LENGTH: int = 8


def _make_handler():
    def decode(payload: bytes, version: int) -> dict[str, object]:
        return json.loads(payload)

    def encode(value: dict[str, object], version: int) -> bytes:
        return json.dumps(value).encode("utf-8")

    def add_field(step: int):
        return lambda value: {**value, f"field_{step}": step}

    def drop_field(step: int):
        return lambda value: {k: v for k, v in value.items() if k != f"field_{step}"}

    return create_versioned_data_handler(
        decode=decode,
        encode=encode,
        upgrade_converters=[add_field(i) for i in range(_CHAIN_LENGTH)],
        downgrade_converters=[drop_field(i) for i in reversed(range(_CHAIN_LENGTH))],
    )


def bench_handler_latency() -> dict[str, object]:
    """Benchmark a full-chain embedded-version read.

    Returns
    -------
    dict with keys: operation, iterations, chain_length, total_seconds,
    ops_per_second, p50_latency_ms, p99_latency_ms.
    """
    handler = _make_handler()
    framed = handler.serialize_with_embedded_version({"id": 1, "name": "bench"}, 1)

    for _ in range(_WARMUP):
        handler.deserialize_with_embedded_version(framed)

    latencies: list[float] = []
    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        handler.deserialize_with_embedded_version(framed)
        latencies.append((time.perf_counter() - t0) * 1000)
    total = time.perf_counter() - start

    latencies.sort()
    return {
        "operation": "deserialize_with_embedded_version",
        "iterations": _ITERATIONS,
        "chain_length": _CHAIN_LENGTH,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "p50_latency_ms": round(latencies[len(latencies) // 2], 4),
        "p99_latency_ms": round(latencies[int(len(latencies) * 0.99)], 4),
    }


if __name__ == "__main__":
    print(json.dumps(bench_handler_latency(), indent=2))

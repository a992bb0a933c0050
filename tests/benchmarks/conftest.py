"""Benchmark fixture configuration."""

from typing import Any

import pytest


@pytest.fixture()
def benchmark_config(benchmark: Any) -> Any:
    """Configure benchmark defaults."""
    benchmark.group = "libmatch"
    benchmark.warmup = True
    return benchmark

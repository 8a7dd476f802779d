"""Performance monitoring utilities for DepSleuth."""

import functools
import os
import time
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar
from rich.console import Console
from rich.table import Table

from .logging import get_logger

F = TypeVar('F', bound=Callable[..., Any])

BENCHMARK_ENV = "DEPSLEUTH_VERBOSE_BENCHMARK"


@dataclass
class PerformanceMetrics:
    """Container for performance metrics."""

    function_name: str
    execution_time: float
    memory_usage: Optional[float] = None
    memory_peak: Optional[float] = None

    def __post_init__(self) -> None:
        """Convert memory usage to MB for readability."""
        if self.memory_usage is not None:
            self.memory_usage = self.memory_usage / 1024 / 1024
        if self.memory_peak is not None:
            self.memory_peak = self.memory_peak / 1024 / 1024


class PerformanceMonitor:
    """Timing (and optional memory) tracking for scan phases."""

    def __init__(self, enable_memory_tracking: bool = False) -> None:
        self.metrics: List[PerformanceMetrics] = []
        self.enable_memory_tracking = enable_memory_tracking

        if enable_memory_tracking and not tracemalloc.is_tracing():
            tracemalloc.start()

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Context manager for measuring performance.

        Args:
            name: Name of the operation being measured

        Yields:
            None
        """
        start_time = time.perf_counter()
        start_memory = None

        if self.enable_memory_tracking:
            start_memory = tracemalloc.get_traced_memory()[0]

        try:
            yield
        finally:
            execution_time = time.perf_counter() - start_time

            memory_usage = None
            peak_memory = None
            if self.enable_memory_tracking:
                current_memory, peak_memory = tracemalloc.get_traced_memory()
                memory_usage = current_memory - (start_memory or 0)

            self.metrics.append(PerformanceMetrics(
                function_name=name,
                execution_time=execution_time,
                memory_usage=memory_usage,
                memory_peak=peak_memory,
            ))

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary.

        Returns:
            Dictionary with performance summary
        """
        if not self.metrics:
            return {}

        total_time = sum(m.execution_time for m in self.metrics)
        summary: Dict[str, Any] = {
            "total_executions": len(self.metrics),
            "total_time": total_time,
            "average_time": total_time / len(self.metrics),
            "phases": {m.function_name: m.execution_time for m in self.metrics},
        }
        if self.enable_memory_tracking:
            summary["total_memory"] = sum(m.memory_usage or 0 for m in self.metrics)
            summary["max_peak_memory"] = max(m.memory_peak or 0 for m in self.metrics)
        return summary

    def merge(self, other: "PerformanceMonitor") -> None:
        """Append another monitor's metrics to this one."""
        self.metrics.extend(other.metrics)

    def print_summary(self, console: Optional[Console] = None) -> None:
        """Print performance summary to console."""
        summary = self.get_summary()
        if not summary:
            return

        table = Table(title="Performance Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        for phase, seconds in summary["phases"].items():
            table.add_row(phase, f"{seconds:.4f}s")
        table.add_row("Total Time", f"{summary['total_time']:.4f}s")

        if self.enable_memory_tracking:
            table.add_row("Total Memory", f"{summary['total_memory']:.2f} MB")
            table.add_row("Max Peak Memory", f"{summary['max_peak_memory']:.2f} MB")

        (console or Console()).print(table)


def benchmark(func: F) -> F:
    """Simple benchmark decorator.

    Timing is logged only when DEPSLEUTH_VERBOSE_BENCHMARK is set.

    Args:
        func: Function to benchmark

    Returns:
        Wrapped function with timing
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        end_time = time.perf_counter()

        if os.environ.get(BENCHMARK_ENV):
            get_logger("Performance").info(f"{func.__name__} took {end_time - start_time:.4f} seconds")
        return result
    return wrapper

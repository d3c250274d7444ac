"""Wall-clock timing for script commands and frame renders.

Provides:
    - timer(): One-shot context manager, reports to a sink or the log
    - TimerAccumulator: Running count/total/min/max for one category
    - TimingTable: Accumulators keyed by category (one per script keyword)

The interpreter keeps a TimingTable keyed by command keyword; the CLI dumps
``TimingTable.totals()`` into the run summary.

Usage:
    from scanline3d.utils.profiler import TimingTable

    table = TimingTable()
    with table.measure("box"):
        canvas.render_polygons_with_stack(polygons, stack)
    table.log_summary()
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Time a block once.

    Parameters
    ----------
    name : str
        Label passed to the sink
    sink : Optional[Callable[[str, float], None]]
        Called as ``sink(name, elapsed_seconds)``; when None the duration is
        logged at DEBUG

    Notes
    -----
    The sink fires even if the block raises.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.debug(f"{name}: {elapsed:.4f}s")


class TimerAccumulator:
    """Running statistics for repeated measurements of one category.

    Attributes
    ----------
    name : str
    total_time : float
        Sum of measured durations in seconds
    count : int
    min_time, max_time : float
        Extremes seen so far (0.0 before the first sample)
    """

    def __init__(self, name: str):
        self.name = name
        self.reset()

    def add(self, elapsed: float) -> None:
        """Record one duration in seconds."""
        if self.count == 0:
            self.min_time = self.max_time = elapsed
        else:
            self.min_time = min(self.min_time, elapsed)
            self.max_time = max(self.max_time, elapsed)
        self.total_time += elapsed
        self.count += 1

    @contextmanager
    def measure(self):
        with timer(self.name, sink=lambda _name, elapsed: self.add(elapsed)):
            yield

    def mean(self) -> float:
        """Mean duration, 0.0 when nothing was measured."""
        return self.total_time / self.count if self.count > 0 else 0.0

    def reset(self) -> None:
        self.total_time = 0.0
        self.count = 0
        self.min_time = 0.0
        self.max_time = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            'count': self.count,
            'total_s': self.total_time,
            'mean_s': self.mean(),
            'min_s': self.min_time,
            'max_s': self.max_time,
        }

    def __repr__(self) -> str:
        return (
            f"TimerAccumulator({self.name}, count={self.count}, mean={self.mean():.4f}s, "
            f"max={self.max_time:.4f}s)"
        )


class TimingTable:
    """Accumulators created on first use, keyed by category name."""

    def __init__(self):
        self._timers: Dict[str, TimerAccumulator] = {}

    def get(self, name: str) -> TimerAccumulator:
        """Accumulator for ``name``, created empty if missing."""
        if name not in self._timers:
            self._timers[name] = TimerAccumulator(name)
        return self._timers[name]

    def measure(self, name: str):
        return self.get(name).measure()

    def totals(self) -> Dict[str, float]:
        """Total seconds per category."""
        return {name: acc.total_time for name, acc in self._timers.items()}

    def grand_total(self) -> float:
        return sum(acc.total_time for acc in self._timers.values())

    def log_summary(self, level: int = logging.DEBUG) -> None:
        """Log one line per category, slowest first."""
        for acc in sorted(self._timers.values(), key=lambda a: a.total_time, reverse=True):
            logger.log(
                level,
                f"{acc.name:<8} n={acc.count:<5} total={acc.total_time:.4f}s "
                f"mean={acc.mean():.4f}s max={acc.max_time:.4f}s"
            )

    def clear(self) -> None:
        self._timers.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._timers

    def __getitem__(self, name: str) -> TimerAccumulator:
        return self._timers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._timers)

    def __len__(self) -> int:
        return len(self._timers)

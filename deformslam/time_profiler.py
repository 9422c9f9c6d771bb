"""Collects and reports execution-time measurements per identifier."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from deformslam.statistics_toolbox import mean, sigma

__all__ = ["TimeProfiler"]

_log = logging.getLogger(__name__)

T = TypeVar("T")


class TimeProfiler:
    """Records elapsed times in milliseconds under string identifiers."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._watchers: dict[str, list[float]] = {}
        self._started: dict[str, float] = {}

    def tic(self, identifier: str) -> None:
        """Start a measurement for the identifier."""
        self._started[identifier] = self._clock()

    def toc(self, identifier: str) -> None:
        """Stop the measurement and record whole elapsed milliseconds."""
        end = self._clock()
        try:
            start = self._started[identifier]
        except KeyError:
            raise KeyError(f"no measurement started for {identifier!r}") from None
        elapsed_ms = float(int((end - start) * 1000.0))
        self._watchers.setdefault(identifier, []).append(elapsed_ms)

    def measure(self, identifier: str, function: Callable[[], T]) -> T:
        """Call the function, record its running time and return its result."""
        begin = self._clock()
        result = function()
        elapsed_ms = (self._clock() - begin) * 1000.0
        self._watchers.setdefault(identifier, []).append(elapsed_ms)
        _log.info("%s", elapsed_ms)
        return result

    def samples(self, identifier: str) -> list[float]:
        """Recorded times in milliseconds for the identifier."""
        try:
            return list(self._watchers[identifier])
        except KeyError:
            raise KeyError(f"no samples for {identifier!r}") from None

    def print_statistics(self, identifier: str) -> None:
        """Log the sample count and mean time for the identifier."""
        data = self.samples(identifier)
        _log.info('Time statistics for identifier "%s":', identifier)
        _log.info("\t-Number of samples: %d", len(data))
        _log.info("\t-Mean (ms): %s", format(mean(data), "g"))

    def save_statistics_to_file(self, file_name) -> None:
        """Write one line per identifier: mean, deviation and every sample."""
        with open(file_name, "w", encoding="utf-8") as handle:
            for identifier, data in self._watchers.items():
                line = f"{identifier}: {format(mean(data), 'g')} {format(sigma(data), 'g')} "
                line += "".join(f" {format(value, 'g')}" for value in data)
                handle.write(line + "\n")
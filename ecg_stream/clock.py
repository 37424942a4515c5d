"""
Session time bases.

The detector never reads time itself; the session hands it a *tick*
from one of these clocks and asks the clock for elapsed seconds.

- :class:`SampleClock` (default) counts samples.  Ticks are integers and
  ``seconds_between`` divides the tick difference by ``fs`` once, so
  intervals are exact multiples of the sample period and immune to
  scheduling jitter.
- :class:`ArrivalClock` stamps each sample with ``time.monotonic()`` at
  arrival.  Useful when the sender does not hold a fixed rate, at the
  cost of network jitter leaking into RR intervals.  A batch that arrives
  in one message is spread over ``1/fs`` steps from its arrival time.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional, Protocol, Union

Tick = Union[int, float]


class Clock(Protocol):
    def tick(self) -> Tick: ...

    def ticks(self, n: int) -> List[Tick]: ...

    def seconds_between(self, earlier: Tick, later: Tick) -> float: ...


class SampleClock:
    """Sample-index time at a fixed rate ``fs``."""

    def __init__(self, fs: float) -> None:
        self.fs = fs
        self._index = -1

    def tick(self) -> int:
        self._index += 1
        return self._index

    def ticks(self, n: int) -> List[int]:
        start = self._index + 1
        self._index += n
        return list(range(start, start + n))

    def seconds_between(self, earlier: Tick, later: Tick) -> float:
        return (later - earlier) / self.fs


class ArrivalClock:
    """Wall-clock arrival time (monotonic seconds)."""

    def __init__(self, fs: float = 250.0, time_fn: Callable[[], float] = time.monotonic) -> None:
        self.fs = fs
        self._time_fn = time_fn
        self._last: Optional[float] = None

    def tick(self) -> float:
        return self.ticks(1)[0]

    def ticks(self, n: int) -> List[float]:
        """
        Stamps for *n* samples that arrived together.

        Element ``k`` is stamped ``k / fs`` after the first.  The first
        stamp never falls on or before the last one already issued, so a
        message arriving while an earlier batch still "plays out" continues
        after it.
        """
        now = self._time_fn()
        if self._last is not None and now <= self._last:
            now = self._last + 1.0 / self.fs
        stamps = [now + k / self.fs for k in range(n)]
        if stamps:
            self._last = stamps[-1]
        return stamps

    def seconds_between(self, earlier: Tick, later: Tick) -> float:
        return float(later - earlier)


def make_clock(timing: str, fs: float) -> Clock:
    if timing == "sample":
        return SampleClock(fs)
    if timing == "arrival":
        return ArrivalClock(fs)
    raise ValueError(f"unknown timing model {timing!r} (expected 'sample' or 'arrival')")

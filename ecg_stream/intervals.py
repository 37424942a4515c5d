"""
RR-interval gating.

Intervals outside the open range ``(rr_min, rr_max)`` are dropped
without surfacing an error: an ectopic beat or a detector false
positive must not pollute HR/HRV.  Accepted intervals go into a bounded
window, oldest evicted first.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Deque, Tuple

logger = logging.getLogger(__name__)


class IntervalVerdict(enum.Enum):
    ACCEPTED = "accepted"
    OUT_OF_PHYSIOLOGICAL_RANGE = "out_of_physiological_range"

    @property
    def accepted(self) -> bool:
        return self is IntervalVerdict.ACCEPTED


class IntervalValidator:
    """
    Physiological-range gate plus sliding window of accepted intervals.

    Parameters
    ----------
    rr_min, rr_max:
        Exclusive bounds in seconds.  Boundary values are rejected.
    capacity:
        Number of accepted intervals retained.
    """

    def __init__(self, rr_min: float, rr_max: float, capacity: int = 10) -> None:
        self.rr_min = rr_min
        self.rr_max = rr_max
        self._window: Deque[float] = deque(maxlen=capacity)
        self.accepted = 0
        self.rejected = 0

    def validate(self, rr: float) -> IntervalVerdict:
        if not self.rr_min < rr < self.rr_max:
            self.rejected += 1
            logger.debug("RR %.3fs outside (%.2f, %.2f) – dropped", rr, self.rr_min, self.rr_max)
            return IntervalVerdict.OUT_OF_PHYSIOLOGICAL_RANGE
        self._window.append(rr)
        self.accepted += 1
        return IntervalVerdict.ACCEPTED

    @property
    def window(self) -> Tuple[float, ...]:
        """Accepted intervals, oldest first."""
        return tuple(self._window)

    @property
    def latest(self) -> float | None:
        return self._window[-1] if self._window else None

    def __len__(self) -> int:
        return len(self._window)

    def reset(self) -> None:
        self._window.clear()
        self.accepted = 0
        self.rejected = 0

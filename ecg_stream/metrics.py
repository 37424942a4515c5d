"""
Vital-sign estimators fed by accepted RR intervals.

- Heart rate: ``60 / rr`` through an exponential filter
  ``hr = (1 - w) * hr_prev + w * bpm`` (first value seeds directly).
- HRV: RMSSD over the interval window, in milliseconds.
- QRS width: fixed-duration approximation.  The Q and S minima are
  located in the waveform history around the beat, but the reported
  width is ``(q_window + s_window) / fs`` – no morphological edge
  detection is attempted.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ecg_stream.history import WaveformHistory

logger = logging.getLogger(__name__)


def rmssd_ms(intervals: Sequence[float]) -> float:
    """Root-mean-square of successive differences, seconds in, ms out."""
    rr = np.asarray(intervals, dtype=np.float64)
    if rr.size < 2:
        raise ValueError("RMSSD needs at least two intervals")
    diffs = np.diff(rr)
    return float(1000.0 * np.sqrt(np.mean(diffs ** 2)))


def round_half_up(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return int(math.floor(value + 0.5))


class HeartRateEstimator:
    """Exponentially smoothed heart rate in BPM."""

    def __init__(self, smoothing: float = 0.2) -> None:
        self.smoothing = smoothing
        self.value: Optional[float] = None

    def update(self, rr: float) -> float:
        bpm = 60.0 / rr
        if self.value is None:
            self.value = bpm
        else:
            self.value = (1.0 - self.smoothing) * self.value + self.smoothing * bpm
        return self.value

    def reset(self) -> None:
        self.value = None


class HRVEstimator:
    """RMSSD over the accepted-interval window; ``None`` below ``min_intervals``."""

    def __init__(self, min_intervals: int = 3) -> None:
        self.min_intervals = min_intervals
        self.value: Optional[float] = None

    def update(self, window: Sequence[float]) -> Optional[float]:
        if len(window) >= self.min_intervals:
            self.value = rmssd_ms(window)
        return self.value

    def reset(self) -> None:
        self.value = None


@dataclass(frozen=True)
class QRSEstimate:
    """
    Width estimate around one beat.

    ``q_pos``/``s_pos`` are history positions of the minima found in the
    Q and S search windows (``None`` if a window had no retained samples).
    """

    width_ms: float
    q_pos: Optional[int]
    s_pos: Optional[int]
    q_value: Optional[float]
    s_value: Optional[float]


class QRSWidthEstimator:
    """
    Parameters
    ----------
    fs:
        Sampling rate (Hz).
    q_window, s_window:
        Search window lengths in samples before and after the beat.
    """

    def __init__(self, fs: float, q_window: int, s_window: int) -> None:
        self.fs = fs
        self.q_window = q_window
        self.s_window = s_window
        self.value: Optional[float] = None
        self.last_estimate: Optional[QRSEstimate] = None

    def update(self, history: WaveformHistory) -> QRSEstimate:
        """Estimate around the newest sample of *history* (the beat)."""
        beat = len(history) - 1
        q_start = beat - self.q_window
        q_pos, q_val = _argmin(history.waveform(q_start, beat), max(q_start, 0))
        s_pos, s_val = _argmin(history.waveform(beat, beat + self.s_window), beat)

        width = (self.q_window + self.s_window) / self.fs * 1000.0
        estimate = QRSEstimate(width_ms=width, q_pos=q_pos, s_pos=s_pos, q_value=q_val, s_value=s_val)
        self.value = width
        self.last_estimate = estimate
        logger.debug("QRS width %.0f ms (Q@%s S@%s)", width, q_pos, s_pos)
        return estimate

    def reset(self) -> None:
        self.value = None
        self.last_estimate = None


def _argmin(segment: np.ndarray, offset: int):
    if segment.size == 0:
        return None, None
    i = int(np.argmin(segment))
    return offset + i, float(segment[i])

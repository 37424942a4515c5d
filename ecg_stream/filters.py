"""
Causal single-pole filters for the ECG stream.

Algorithm
---------
1. High-pass (baseline removal)::

       y[n] = a * (y[n-1] + x[n] - x[n-1]),   a = exp(-2*pi*fc/fs)

2. Low-pass (noise smoothing), exponential moving average::

       y[n] = y[n-1] + b * (x[n] - y[n-1]),   b = 2*pi*fc/fs

3. QRS band energy: a second, narrower low-pass over the cleaned
   waveform, squared to give an instantaneous energy proxy.

Each filter owns its own state.  ``step`` advances one sample;
``apply`` runs a whole block through :func:`scipy.signal.lfilter`
seeded from (and written back to) the same state, so mixing the two
calls is equivalent to stepping sample by sample.

Non-finite inputs are not checked here; they propagate.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy.signal import lfilter

from ecg_stream.config import PipelineConfig


class HighPassFilter:
    """
    One-pole baseline-removal high-pass.

    Parameters
    ----------
    alpha:
        Pole of the recursion, ``exp(-2*pi*cutoff/fs)``.
    """

    def __init__(self, alpha: float) -> None:
        self.alpha = alpha
        self.x_prev = 0.0
        self.y_prev = 0.0

    def step(self, x: float) -> float:
        y = self.alpha * (self.y_prev + x - self.x_prev)
        self.x_prev = x
        self.y_prev = y
        return y

    def apply(self, block: np.ndarray) -> np.ndarray:
        block = np.asarray(block, dtype=np.float64)
        if block.size == 0:
            return block.copy()
        a = self.alpha
        # transposed direct form II: z = b1*x[-1] - a1*y[-1]
        zi = np.array([a * (self.y_prev - self.x_prev)])
        y, _ = lfilter([a, -a], [1.0, -a], block, zi=zi)
        self.x_prev = float(block[-1])
        self.y_prev = float(y[-1])
        return y

    def reset(self) -> None:
        self.x_prev = 0.0
        self.y_prev = 0.0


class LowPassFilter:
    """
    One-pole exponential-moving-average low-pass.

    Parameters
    ----------
    beta:
        Smoothing coefficient, ``2*pi*cutoff/fs``.
    """

    def __init__(self, beta: float) -> None:
        self.beta = beta
        self.y_prev = 0.0

    def step(self, x: float) -> float:
        self.y_prev = self.y_prev + self.beta * (x - self.y_prev)
        return self.y_prev

    def apply(self, block: np.ndarray) -> np.ndarray:
        block = np.asarray(block, dtype=np.float64)
        if block.size == 0:
            return block.copy()
        b = self.beta
        zi = np.array([(1.0 - b) * self.y_prev])
        y, _ = lfilter([b, 0.0], [1.0, b - 1.0], block, zi=zi)
        self.y_prev = float(y[-1])
        return y

    def reset(self) -> None:
        self.y_prev = 0.0


class QRSEnergyExtractor:
    """Low-pass tuned to the QRS band edge, squared."""

    def __init__(self, beta: float) -> None:
        self._lp = LowPassFilter(beta)

    def step(self, x: float) -> float:
        v = self._lp.step(x)
        return v * v

    def apply(self, block: np.ndarray) -> np.ndarray:
        v = self._lp.apply(block)
        return v * v

    def reset(self) -> None:
        self._lp.reset()


class FilterBank:
    """
    The three per-session filters wired in series.

    ``raw (centred) -> high-pass -> low-pass -> clean``, and
    ``clean -> QRS extractor -> energy``.
    """

    def __init__(self, config: PipelineConfig) -> None:
        self.highpass = HighPassFilter(config.hp_alpha)
        self.lowpass = LowPassFilter(config.lp_beta)
        self.qrs = QRSEnergyExtractor(config.qrs_beta)

    def step(self, x: float) -> Tuple[float, float]:
        """Return ``(clean, energy)`` for one centred sample."""
        clean = self.lowpass.step(self.highpass.step(x))
        return clean, self.qrs.step(clean)

    def apply(self, block: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Vectorised :meth:`step` over a block of centred samples."""
        clean = self.lowpass.apply(self.highpass.apply(block))
        return clean, self.qrs.apply(clean)

    def reset(self) -> None:
        self.highpass.reset()
        self.lowpass.reset()
        self.qrs.reset()

"""
Fixed-capacity waveform/energy history.

Two parallel numpy ring buffers: the cleaned waveform (for QRS width
search) and its band energy (for the detector's median threshold).
Positions are chronological: ``0`` is the oldest retained sample and
``len(history) - 1`` the newest.  Negative positions count back from the
newest, as with lists.
"""

from __future__ import annotations

import numpy as np


class WaveformHistory:
    """
    Sliding window of the last ``capacity`` filtered samples.

    Appending when full overwrites the oldest entry in O(1).
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._wave = np.zeros(capacity, dtype=np.float64)
        self._energy = np.zeros(capacity, dtype=np.float64)
        self._head = 0      # next write slot
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def append(self, value: float, energy: float) -> None:
        self._wave[self._head] = value
        self._energy[self._head] = energy
        self._head = (self._head + 1) % self.capacity
        if self._size < self.capacity:
            self._size += 1

    def __getitem__(self, pos: int) -> float:
        """Waveform value at chronological position *pos*."""
        return float(self._wave[self._slot(pos)])

    def energy_at(self, pos: int) -> float:
        return float(self._energy[self._slot(pos)])

    def waveform(self, start: int = 0, stop: int | None = None) -> np.ndarray:
        """
        Chronological copy of waveform positions ``[start, stop)``.

        Bounds are clipped to what is retained, so a window reaching
        past either end simply comes back shorter.
        """
        return self._window(self._wave, start, stop)

    def energies(self, start: int = 0, stop: int | None = None) -> np.ndarray:
        return self._window(self._energy, start, stop)

    def median_energy(self) -> float:
        """
        Median of the retained energies; ``0.0`` when empty.

        For an even count this is the upper median, ``sorted(e)[n // 2]``.
        ``np.partition`` selects it in linear time without a full sort.
        """
        n = self._size
        if n == 0:
            return 0.0
        k = n // 2
        values = self._energy[:n] if n < self.capacity else self._energy
        return float(np.partition(values, k)[k])

    def clear(self) -> None:
        self._head = 0
        self._size = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _oldest(self) -> int:
        return (self._head - self._size) % self.capacity

    def _slot(self, pos: int) -> int:
        if pos < 0:
            pos += self._size
        if not 0 <= pos < self._size:
            raise IndexError(f"history position out of range (len={self._size})")
        return (self._oldest() + pos) % self.capacity

    def _window(self, buf: np.ndarray, start: int, stop: int | None) -> np.ndarray:
        if stop is None:
            stop = self._size
        start = max(0, start)
        stop = min(self._size, stop)
        if stop <= start:
            return np.empty(0, dtype=np.float64)
        idx = (self._oldest() + np.arange(start, stop)) % self.capacity
        return buf[idx]

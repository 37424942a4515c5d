"""
Synthetic ADC streams for demos and tests.

Each beat is a half-sine "QRS" pulse riding on the ADC midpoint.  Beat
positions are whole sample indices so RR intervals are exact multiples
of the sample period.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def pulse_train(
    beat_indices: Sequence[int],
    n_samples: int,
    fs: float = 250.0,
    amplitude: float = 600.0,
    width_s: float = 0.08,
    baseline: float = 2048.0,
) -> np.ndarray:
    """Half-sine pulses of ``width_s`` starting at each of *beat_indices*."""
    signal = np.full(n_samples, baseline, dtype=np.float64)
    width = max(1, int(round(width_s * fs)))
    pulse = amplitude * np.sin(np.pi * np.arange(width) / width)
    for start in beat_indices:
        if start >= n_samples:
            continue
        stop = min(start + width, n_samples)
        signal[start:stop] += pulse[: stop - start]
    return signal


def synthetic_ecg(
    duration_s: float,
    bpm: float = 60.0,
    fs: float = 250.0,
    amplitude: float = 600.0,
    width_s: float = 0.08,
    first_beat_s: float = 0.5,
    baseline: float = 2048.0,
    noise_std: float = 0.0,
    wander_amplitude: float = 0.0,
    wander_hz: float = 0.3,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Regular pulse train at *bpm*.

    Parameters
    ----------
    noise_std:
        Standard deviation of additive Gaussian noise (ADC units).
    wander_amplitude, wander_hz:
        Slow sinusoidal baseline wander, as from breathing or electrode drift.
    """
    n = int(round(duration_s * fs))
    period = 60.0 / bpm
    beats = []
    k = 0
    while first_beat_s + k * period < duration_s:
        beats.append(int(round((first_beat_s + k * period) * fs)))
        k += 1
    signal = pulse_train(beats, n, fs=fs, amplitude=amplitude, width_s=width_s, baseline=baseline)

    if wander_amplitude:
        time_axis = np.arange(n) / fs
        signal += wander_amplitude * np.sin(2 * np.pi * wander_hz * time_axis)
    if noise_std:
        rng = rng or np.random.default_rng(0)
        signal += rng.normal(0.0, noise_std, n)
    return signal

"""
Pipeline constants.

All tunables of the per-session pipeline live in one frozen
:class:`PipelineConfig`.  A config is built once at startup and shared
read-only by every session; sessions never mutate it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable set of pipeline constants.

    Parameters
    ----------
    fs:
        Sampling rate of the incoming ADC stream (Hz).
    adc_midpoint:
        Value subtracted from every raw reading before filtering.
    hp_cutoff:
        Baseline-removal high-pass corner (Hz).
    lp_cutoff:
        Noise-smoothing low-pass corner (Hz).
    qrs_bp_low, qrs_bp_high:
        QRS band edges (Hz).  The single-pole energy extractor only uses the
        upper edge; the lower edge is bounds-checked and kept for band-pass
        variants.
    rr_min, rr_max:
        Physiological RR bounds in seconds (exclusive).
    refractory_s:
        Minimum time between two detections.  Defaults to ``rr_min``.
    history_len:
        Capacity of the waveform/energy history (samples).
    rr_window:
        Capacity of the accepted-interval window.
    warmup_s:
        Seconds of energy history required before detection starts.
    threshold_multiplier:
        Detection threshold as a fraction of the median energy.
    require_rearm:
        Only fire on an upward threshold crossing seen after the refractory
        period.  ``False`` gives the plain level-triggered detector.
    peak_fraction:
        A crossing only counts as a beat if its energy reaches this fraction
        of the running QRS peak level.  ``0`` disables the check.
    peak_smoothing:
        Weight of each new beat peak in the running QRS peak level.
    hr_smoothing:
        Weight of the newest instantaneous rate in the HR exponential filter.
    hrv_min_intervals:
        Accepted intervals needed before RMSSD is reported.
    q_window_s, s_window_s:
        Search windows before/after a beat for the QRS width estimate.
    """

    fs: float = 250.0
    adc_midpoint: float = 2048.0

    hp_cutoff: float = 1.5
    lp_cutoff: float = 30.0
    qrs_bp_low: float = 5.0
    qrs_bp_high: float = 18.0

    rr_min: float = 0.35
    rr_max: float = 1.6
    refractory_s: float | None = None

    history_len: int = 1250
    rr_window: int = 10
    warmup_s: float = 2.0

    threshold_multiplier: float = 0.6
    require_rearm: bool = True
    peak_fraction: float = 0.25
    peak_smoothing: float = 0.125

    hr_smoothing: float = 0.2
    hrv_min_intervals: int = 3

    q_window_s: float = 0.025
    s_window_s: float = 0.060

    def __post_init__(self) -> None:
        if self.refractory_s is None:
            object.__setattr__(self, "refractory_s", self.rr_min)
        self._validate()

    # ------------------------------------------------------------------
    # Derived constants
    # ------------------------------------------------------------------

    @property
    def warmup_samples(self) -> int:
        return int(round(self.fs * self.warmup_s))

    @property
    def hp_alpha(self) -> float:
        """Pole of the baseline-removal high-pass."""
        return math.exp(-2.0 * math.pi * self.hp_cutoff / self.fs)

    @property
    def lp_beta(self) -> float:
        """Smoothing coefficient of the noise low-pass."""
        return 2.0 * math.pi * self.lp_cutoff / self.fs

    @property
    def qrs_beta(self) -> float:
        """Smoothing coefficient of the QRS band-energy low-pass."""
        return 2.0 * math.pi * self.qrs_bp_high / self.fs

    @property
    def q_window_samples(self) -> int:
        return _whole_samples(self.q_window_s * self.fs)

    @property
    def s_window_samples(self) -> int:
        return _whole_samples(self.s_window_s * self.fs)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        if not self.fs > 0:
            raise ValueError(f"fs must be positive, got {self.fs}")
        nyq = self.fs / 2.0
        for name in ("hp_cutoff", "lp_cutoff", "qrs_bp_low", "qrs_bp_high"):
            value = getattr(self, name)
            if not 0 < value < nyq:
                raise ValueError(f"{name}={value} must lie in (0, {nyq}) Hz")
        if self.qrs_bp_low >= self.qrs_bp_high:
            raise ValueError("qrs_bp_low must be below qrs_bp_high")
        # one-pole EMA y += b*(x - y) is stable only for 0 < b < 2
        for name in ("lp_beta", "qrs_beta"):
            if not 0 < getattr(self, name) < 2:
                raise ValueError(
                    f"{name}={getattr(self, name):.3f} makes the low-pass unstable at fs={self.fs}"
                )
        if not 0 < self.rr_min < self.rr_max:
            raise ValueError("require 0 < rr_min < rr_max")
        if self.refractory_s < 0:
            raise ValueError("refractory_s must be non-negative")
        if not 2 <= self.rr_window <= 20:
            raise ValueError(f"rr_window must be in 2..20, got {self.rr_window}")
        if self.warmup_samples < 1:
            raise ValueError("warmup_s must cover at least one sample")
        if self.history_len < self.warmup_samples:
            raise ValueError(
                f"history_len={self.history_len} cannot hold {self.warmup_samples} warmup samples"
            )
        if self.threshold_multiplier <= 0:
            raise ValueError("threshold_multiplier must be positive")
        if not 0 <= self.peak_fraction < 1:
            raise ValueError("peak_fraction must be in [0, 1)")
        if not 0 < self.peak_smoothing <= 1:
            raise ValueError("peak_smoothing must be in (0, 1]")
        if not 0 < self.hr_smoothing <= 1:
            raise ValueError("hr_smoothing must be in (0, 1]")
        if self.hrv_min_intervals < 2:
            raise ValueError("hrv_min_intervals must be at least 2")
        if self.q_window_s < 0 or self.s_window_s < 0:
            raise ValueError("QRS search windows must be non-negative")


def _whole_samples(n: float) -> int:
    # 0.06 * 250 can land a hair below 15.0
    return int(math.floor(n + 1e-9))

"""
Per-connection pipeline driver.

One :class:`SessionProcessor` owns every piece of mutable state for a
single stream: filter memories, waveform history, detector, interval
window and estimators.  Nothing is shared between sessions, so separate
sessions may run in separate threads or tasks without locking.

Per sample::

    raw - midpoint -> FilterBank -> WaveformHistory.append
        -> BeatDetector.update
        -> [beat with rr] IntervalValidator.validate
        -> [accepted] HR / HRV / QRS estimators
        -> SampleResult
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from ecg_stream.clock import Clock, Tick, make_clock
from ecg_stream.config import PipelineConfig
from ecg_stream.detector import BeatDetector, BeatEvent
from ecg_stream.filters import FilterBank
from ecg_stream.history import WaveformHistory
from ecg_stream.intervals import IntervalValidator
from ecg_stream.metrics import (
    HeartRateEstimator,
    HRVEstimator,
    QRSWidthEstimator,
    round_half_up,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Unrounded current metrics; each ``None`` until computable."""

    hr: Optional[float]
    hrv: Optional[float]
    qrs_width: Optional[float]


@dataclass(frozen=True)
class SampleResult:
    """One outgoing record: filtered sample plus rounded metrics."""

    ecg: float
    hr: Optional[int]
    hrv: Optional[int]
    qrs: Optional[int]
    beat: Optional[BeatEvent] = None


class SessionProcessor:
    """
    Drive the full pipeline for one stream, one sample at a time.

    Parameters
    ----------
    config:
        Shared, immutable pipeline constants.
    clock:
        Time base.  Defaults to sample-index timing at ``config.fs``.
    """

    def __init__(self, config: PipelineConfig | None = None, clock: Clock | None = None) -> None:
        self.config = config or PipelineConfig()
        self.clock = clock or make_clock("sample", self.config.fs)

        cfg = self.config
        self.filters = FilterBank(cfg)
        self.history = WaveformHistory(cfg.history_len)
        self.detector = BeatDetector(cfg, self.clock)
        self.validator = IntervalValidator(cfg.rr_min, cfg.rr_max, cfg.rr_window)
        self.hr = HeartRateEstimator(cfg.hr_smoothing)
        self.hrv = HRVEstimator(cfg.hrv_min_intervals)
        self.qrs = QRSWidthEstimator(cfg.fs, cfg.q_window_samples, cfg.s_window_samples)
        self.samples_seen = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(self, raw: float) -> SampleResult:
        """
        Run one raw ADC reading through the pipeline.

        Raises ``ValueError`` for a non-finite reading; the message codec
        is expected to have rejected those already.
        """
        raw = float(raw)
        if not math.isfinite(raw):
            raise ValueError(f"non-finite sample: {raw!r}")
        clean, energy = self.filters.step(raw - self.config.adc_midpoint)
        return self._advance(clean, energy, self.clock.tick())

    def process_block(self, raws: Iterable[float]) -> List[SampleResult]:
        """
        Process a batch of readings in order.

        Filtering runs vectorised over the whole block; detection and
        metrics still advance sample by sample, so the results match
        repeated :meth:`process` calls.  The clock stamps the whole block
        at once.
        """
        block = np.asarray(list(raws), dtype=np.float64)
        if block.size == 0:
            return []
        if not np.all(np.isfinite(block)):
            raise ValueError("block contains non-finite samples")
        clean, energy = self.filters.apply(block - self.config.adc_midpoint)
        ticks = self.clock.ticks(block.size)
        return [self._advance(float(c), float(e), t) for c, e, t in zip(clean, energy, ticks)]

    @property
    def metrics(self) -> MetricsSnapshot:
        return MetricsSnapshot(hr=self.hr.value, hrv=self.hrv.value, qrs_width=self.qrs.value)

    def reset(self) -> None:
        """Forget everything; the next sample starts a fresh warmup."""
        self.filters.reset()
        self.history.clear()
        self.detector.reset()
        self.validator.reset()
        self.hr.reset()
        self.hrv.reset()
        self.qrs.reset()
        self.samples_seen = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _advance(self, clean: float, energy: float, tick: Tick) -> SampleResult:
        self.history.append(clean, energy)
        self.samples_seen += 1

        beat = self.detector.update(energy, self.history, tick)
        if beat is not None and beat.rr is not None:
            if self.validator.validate(beat.rr).accepted:
                self.hr.update(beat.rr)
                self.hrv.update(self.validator.window)
                self.qrs.update(self.history)

        return SampleResult(
            ecg=clean,
            hr=round_half_up(self.hr.value),
            hrv=round_half_up(self.hrv.value),
            qrs=round_half_up(self.qrs.value),
            beat=beat,
        )

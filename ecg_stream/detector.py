"""
Adaptive R-peak detector.

Algorithm
---------
1. Stay in ``AWAITING_WARMUP`` until the energy history holds
   ``warmup_samples`` entries (2 s at the defaults); nothing fires before.
2. In ``ACTIVE``, the threshold is ``multiplier * median(energy history)``.
   A running median follows slow amplitude drift (electrode contact)
   without a separate baseline estimator.
3. A beat fires when the current energy exceeds the threshold and more
   than ``refractory_s`` has elapsed since the previous beat.
4. With ``require_rearm`` the detector must also have seen energy at or
   below the threshold *after* the refractory period ended, i.e. a beat
   is an upward crossing.  The high-pass tail behind every QRS decays
   slowly and is still above a median-based threshold when refractory
   expires; without re-arming it would fire there on every beat.
5. Between beats the median sits on the noise floor, so noise alone
   crosses the threshold.  A crossing is only confirmed as a beat if its
   energy also reaches ``peak_fraction`` of a running QRS peak level
   (Pan-Tompkins style signal-peak estimate).  The level is seeded from
   the largest energy seen during warmup, folded towards each beat's
   peak energy (max over its refractory window) and halved whenever
   ``rr_max`` passes without a beat, so an inflated seed cannot lock the
   detector out.
6. Every firing moves the last-beat reference, whether or not the
   resulting RR interval is later accepted.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from ecg_stream.clock import Clock, Tick
from ecg_stream.config import PipelineConfig
from ecg_stream.history import WaveformHistory

logger = logging.getLogger(__name__)


class DetectorState(enum.Enum):
    AWAITING_WARMUP = "awaiting_warmup"
    ACTIVE = "active"


@dataclass(frozen=True)
class BeatEvent:
    """
    A detected R-peak.

    ``rr`` is the interval in seconds to the previous beat, or ``None``
    for the first beat of a session.
    """

    tick: Tick
    energy: float
    threshold: float
    rr: Optional[float]


class BeatDetector:
    """
    Per-session adaptive threshold detector.

    Parameters
    ----------
    config:
        Pipeline constants (warmup, multiplier, refractory period, peak gate).
    clock:
        Converts tick differences to seconds.  Must be the same clock
        that produces the ticks passed to :meth:`update`.
    """

    def __init__(self, config: PipelineConfig, clock: Clock) -> None:
        self.warmup_samples = config.warmup_samples
        self.multiplier = config.threshold_multiplier
        self.refractory_s = config.refractory_s
        self.require_rearm = config.require_rearm
        self.peak_fraction = config.peak_fraction
        self.peak_smoothing = config.peak_smoothing
        self.peak_decay_s = config.rr_max
        self._clock = clock

        self.state = DetectorState.AWAITING_WARMUP
        self.threshold: Optional[float] = None
        self.peak_level: Optional[float] = None
        self.last_beat_tick: Optional[Tick] = None
        self.beats = 0
        self._armed = not self.require_rearm
        self._beat_peak: Optional[float] = None
        self._quiet_since: Optional[Tick] = None

    def update(self, energy: float, history: WaveformHistory, tick: Tick) -> Optional[BeatEvent]:
        """
        Evaluate one sample whose energy was just appended to *history*.

        Returns a :class:`BeatEvent` when a beat fires, otherwise ``None``.
        """
        if self.state is DetectorState.AWAITING_WARMUP:
            if len(history) < self.warmup_samples:
                return None
            self.state = DetectorState.ACTIVE
            self.peak_level = float(history.energies().max())
            self._quiet_since = tick
            logger.debug("Detector active after %d samples (peak level %.3g)", len(history), self.peak_level)

        threshold = self.multiplier * history.median_energy()
        self.threshold = threshold

        since_last: Optional[float] = None
        if self.last_beat_tick is not None:
            since_last = self._clock.seconds_between(self.last_beat_tick, tick)
            if since_last <= self.refractory_s:
                self._beat_peak = max(self._beat_peak or 0.0, energy)
                return None
        if self._beat_peak is not None:
            w = self.peak_smoothing
            self.peak_level = (1.0 - w) * self.peak_level + w * self._beat_peak
            self._beat_peak = None
        if self._clock.seconds_between(self._quiet_since, tick) > self.peak_decay_s:
            self.peak_level *= 0.5
            self._quiet_since = tick

        if energy <= threshold:
            self._armed = True
            return None
        if not self._armed or energy < self.peak_fraction * self.peak_level:
            return None

        self.last_beat_tick = tick
        self._quiet_since = tick
        self._beat_peak = energy
        self.beats += 1
        self._armed = not self.require_rearm
        logger.debug(
            "Beat #%d at tick %s energy=%.3g threshold=%.3g peak=%.3g rr=%s",
            self.beats, tick, energy, threshold, self.peak_level,
            "-" if since_last is None else f"{since_last:.3f}s",
        )
        return BeatEvent(tick=tick, energy=energy, threshold=threshold, rr=since_last)

    def reset(self) -> None:
        self.state = DetectorState.AWAITING_WARMUP
        self.threshold = None
        self.peak_level = None
        self.last_beat_tick = None
        self.beats = 0
        self._armed = not self.require_rearm
        self._beat_peak = None
        self._quiet_since = None

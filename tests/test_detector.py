"""
Unit tests for the adaptive beat detector.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from ecg_stream.clock import SampleClock
from ecg_stream.config import PipelineConfig
from ecg_stream.detector import BeatDetector, DetectorState
from ecg_stream.history import WaveformHistory


def _run(energies, config=None):
    """Feed an energy sequence; return (detector, {tick: event})."""
    config = config or PipelineConfig()
    clock = SampleClock(config.fs)
    history = WaveformHistory(config.history_len)
    det = BeatDetector(config, clock)
    events = {}
    for e in energies:
        history.append(0.0, e)
        tick = clock.tick()
        ev = det.update(e, history, tick)
        if ev is not None:
            events[tick] = ev
    return det, events


def _spikes(n, indices, height=100.0):
    e = np.zeros(n)
    e[list(indices)] = height
    return e


class TestWarmup:

    def test_no_detection_before_warmup(self):
        # huge energy everywhere, alternating so crossings exist
        energies = np.tile([0.0, 1e6], 250)[:499]
        det, events = _run(energies)
        assert events == {}
        assert det.state is DetectorState.AWAITING_WARMUP
        assert det.threshold is None

    def test_active_once_history_reaches_two_seconds(self):
        det, _ = _run(np.zeros(500))
        assert det.state is DetectorState.ACTIVE
        assert det.threshold == 0.0


class TestDetection:

    def test_regular_spikes_give_one_second_rr(self):
        energies = _spikes(1500, range(10, 1500, 250))
        det, events = _run(energies)
        assert sorted(events) == [510, 760, 1010, 1260]
        assert events[510].rr is None
        assert [events[t].rr for t in (760, 1010, 1260)] == [1.0, 1.0, 1.0]
        assert det.beats == 4
        assert det.last_beat_tick == 1260

    def test_threshold_tracks_median(self):
        energies = np.full(600, 5.0)
        det, _ = _run(energies)
        assert det.threshold == pytest.approx(0.6 * 5.0)

    def test_second_spike_inside_refractory_ignored(self):
        energies = _spikes(1000, [510, 520, 590, 760])
        _, events = _run(energies)
        # 520 and 590 are 40 ms and 320 ms after 510
        assert sorted(events) == [510, 760]

    def test_spike_after_refractory_fires(self):
        _, events = _run(_spikes(1000, [510, 600]))
        assert sorted(events) == [510, 600]
        assert events[600].rr == pytest.approx(0.36)

    def test_sustained_energy_needs_rearm(self):
        energies = np.zeros(1000)
        energies[510:700] = 100.0
        energies[760] = 100.0
        _, events = _run(energies)
        assert sorted(events) == [510, 760]
        assert events[760].rr == pytest.approx(1.0)

    def test_level_triggered_without_rearm(self):
        energies = np.zeros(1000)
        energies[510:700] = 100.0
        _, events = _run(energies, PipelineConfig(require_rearm=False))
        # first tick more than 0.35 s after 510 is 598 (88 samples)
        assert sorted(events)[:2] == [510, 598]
        assert events[598].rr == pytest.approx(0.352)

    def test_refractory_holds_for_noisy_energy(self):
        rng = np.random.default_rng(3)
        energies = rng.exponential(1.0, 5000)
        config = PipelineConfig()
        _, events = _run(energies, config)
        ticks = sorted(events)
        assert len(ticks) > 5
        gaps = np.diff(ticks) / config.fs
        assert np.all(gaps > config.rr_min)

    def test_last_beat_moves_even_for_out_of_range_rr(self):
        # 2 s apart: rr=2.0 is outside (0.35, 1.6) but the reference still moves
        energies = _spikes(2000, [510, 1010, 1510])
        det, events = _run(energies)
        assert events[1010].rr == pytest.approx(2.0)
        assert events[1510].rr == pytest.approx(2.0)
        assert det.last_beat_tick == 1510

    def test_reset(self):
        det, _ = _run(_spikes(800, [510]))
        det.reset()
        assert det.state is DetectorState.AWAITING_WARMUP
        assert det.last_beat_tick is None
        assert det.beats == 0


class TestPeakGate:

    def test_noise_between_beats_ignored(self):
        rng = np.random.default_rng(7)
        energies = rng.exponential(1.0, 3000)
        energies[10:3000:250] += 1000.0
        det, events = _run(energies)
        assert sorted(events) == list(range(510, 3000, 250))
        assert det.peak_level == pytest.approx(1000.0, rel=0.05)

    def test_inflated_seed_decays(self):
        # one warmup artifact sets the peak level far above the real beats
        energies = _spikes(8000, range(510, 8000, 250))
        energies[100] = 1e6
        _, events = _run(energies)
        ticks = sorted(events)
        assert ticks
        assert ticks == list(range(ticks[0], 8000, 250))

    def test_zero_fraction_disables_gate(self):
        rng = np.random.default_rng(7)
        energies = rng.exponential(1.0, 3000)
        energies[10:3000:250] += 1000.0
        _, gated = _run(energies)
        _, plain = _run(energies, PipelineConfig(peak_fraction=0.0))
        assert len(plain) > len(gated)

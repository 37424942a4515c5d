"""
Unit tests for the HR, HRV and QRS-width estimators.
Run with:  pytest tests/
"""

from __future__ import annotations

import math

import pytest

from ecg_stream.config import PipelineConfig
from ecg_stream.history import WaveformHistory
from ecg_stream.metrics import (
    HeartRateEstimator,
    HRVEstimator,
    QRSWidthEstimator,
    rmssd_ms,
    round_half_up,
)


class TestHeartRate:

    def test_first_interval_seeds_unsmoothed(self):
        hr = HeartRateEstimator(0.2)
        assert hr.value is None
        assert hr.update(0.8) == pytest.approx(75.0)

    def test_second_interval_is_smoothed(self):
        hr = HeartRateEstimator(0.2)
        hr.update(0.8)
        assert hr.update(1.0) == pytest.approx(0.8 * 75 + 0.2 * 60)
        assert round_half_up(hr.value) == 72

    def test_reset(self):
        hr = HeartRateEstimator()
        hr.update(1.0)
        hr.reset()
        assert hr.value is None


class TestHRV:

    def test_rmssd_formula(self):
        expected = 1000 * math.sqrt(((0.82 - 0.8) ** 2 + (0.79 - 0.82) ** 2) / 2)
        assert rmssd_ms([0.8, 0.82, 0.79]) == pytest.approx(expected)
        assert round_half_up(rmssd_ms([0.8, 0.82, 0.79])) == 25

    def test_regular_train_has_zero_rmssd(self):
        assert rmssd_ms([1.0] * 8) == 0.0

    def test_rmssd_needs_two_intervals(self):
        with pytest.raises(ValueError):
            rmssd_ms([0.8])

    def test_null_below_minimum_window(self):
        hrv = HRVEstimator(min_intervals=3)
        assert hrv.update([0.8]) is None
        assert hrv.update([0.8, 0.82]) is None
        assert hrv.update([0.8, 0.82, 0.79]) == pytest.approx(25.495, abs=1e-3)

    def test_holds_value_when_not_recomputed(self):
        hrv = HRVEstimator(min_intervals=3)
        hrv.update([0.8, 0.82, 0.79])
        first = hrv.value
        assert hrv.update([0.8]) == first


class TestQRSWidth:

    def test_default_width_is_84_ms(self):
        cfg = PipelineConfig()
        assert (cfg.q_window_samples, cfg.s_window_samples) == (6, 15)
        history = WaveformHistory(100)
        for _ in range(30):
            history.append(1.0, 0.0)
        est = QRSWidthEstimator(cfg.fs, cfg.q_window_samples, cfg.s_window_samples).update(history)
        assert est.width_ms == pytest.approx(84.0)

    def test_minima_located_around_beat(self):
        history = WaveformHistory(100)
        values = [10.0] * 20
        values[15] = -3.0       # inside Q window (positions 13..18)
        values[19] = 4.0        # the beat itself, start of S window
        values[5] = -50.0       # outside the Q window
        for v in values:
            history.append(v, 0.0)
        qrs = QRSWidthEstimator(250.0, 6, 15)
        est = qrs.update(history)
        assert (est.q_pos, est.q_value) == (15, -3.0)
        assert (est.s_pos, est.s_value) == (19, 4.0)
        assert qrs.last_estimate is est
        assert qrs.value == pytest.approx(84.0)

    def test_q_window_empty_at_start(self):
        history = WaveformHistory(10)
        history.append(1.0, 0.0)
        est = QRSWidthEstimator(250.0, 6, 15).update(history)
        assert est.q_pos is None and est.q_value is None
        assert est.s_pos == 0


class TestRounding:

    @pytest.mark.parametrize("value,expected", [(72.5, 73), (2.5, 3), (71.49, 71), (0.0, 0), (None, None)])
    def test_half_up(self, value, expected):
        assert round_half_up(value) == expected

"""Tests for band aggregation strategies."""

import numpy as np
import pytest

from bandscope.core.analyzer import (
    BandAggregator,
    CumulativeStrategy,
    RangeSplitStrategy,
    aggregate,
)
from bandscope.core.config import AnalyzerConfig, BandStrategy


# ---------------------------------------------------------------------------
# Range split
# ---------------------------------------------------------------------------

class TestRangeSplit:
    @pytest.fixture
    def strategy(self):
        # 1 Hz per bin on a 64-bin spectrum
        return RangeSplitStrategy(start_frequency=0.0, end_frequency=63.0, sample_rate=128.0)

    def test_layout_follows_power_curve(self, strategy):
        layout = strategy.layout(64, 4)
        assert layout.starts.tolist() == [0, 7, 22, 40]
        assert layout.ends.tolist() == [7, 22, 40, 63]

    def test_flat_spectrum_gives_gain(self, strategy):
        bands = strategy.aggregate(np.ones(64), 4)
        np.testing.assert_allclose(bands, [100.0, 100.0, 100.0, 100.0])

    def test_band_is_mean_of_its_bins(self, strategy):
        spectrum = np.zeros(64)
        spectrum[7:22] = np.linspace(0.0, 1.0, 15)
        bands = strategy.aggregate(spectrum, 4)
        assert bands[0] == 0.0
        assert bands[1] == pytest.approx(50.0)
        assert bands[2] == 0.0

    def test_low_bands_are_narrower(self):
        strategy = RangeSplitStrategy(20.0, 15000.0, 48000.0)
        layout = strategy.layout(4096, 16)
        widths = layout.ends - layout.starts
        assert widths[0] < widths[-1]
        assert np.all(np.diff(widths) >= 0)

    def test_collapsed_ranges_get_one_bin(self, strategy):
        layout = strategy.layout(64, 64)
        assert np.all(layout.ends - layout.starts >= 1)

    def test_never_reads_past_spectrum(self):
        strategy = RangeSplitStrategy(0.0, 1e9, 44100.0)
        for num_bands in (1, 3, 64, 512):
            layout = strategy.layout(64, num_bands)
            assert layout.ends.max() <= 64
            bands = strategy.aggregate(np.ones(64), num_bands)
            assert np.all(np.isfinite(bands))

    def test_range_above_nyquist_uses_last_bin(self):
        strategy = RangeSplitStrategy(30000.0, 40000.0, 44100.0)
        spectrum = np.zeros(64)
        spectrum[-1] = 0.5
        bands = strategy.aggregate(spectrum, 4)
        np.testing.assert_allclose(bands, [50.0] * 4)

    def test_layout_computed_once_per_shape(self, strategy, monkeypatch):
        calls = []
        compute = strategy.layout
        monkeypatch.setattr(strategy, "layout", lambda n, b: calls.append((n, b)) or compute(n, b))

        for _ in range(5):
            strategy.aggregate(np.ones(64), 4)
        strategy.aggregate(np.ones(128), 4)

        assert calls == [(64, 4), (128, 4)]
        assert strategy.cached_layout(64, 4) is strategy.cached_layout(64, 4)

    def test_uneven_band_count(self, strategy):
        bands = strategy.aggregate(np.ones(64), 7)
        assert len(bands) == 7


# ---------------------------------------------------------------------------
# Cumulative power-of-two grouping
# ---------------------------------------------------------------------------

class TestCumulative:
    def test_golden_two_band_fixture(self):
        spectrum = np.array([0, 0, 0, 0, 1, 1, 1, 1], dtype=float)
        bands = CumulativeStrategy().aggregate(spectrum, 2)
        # band 0: indexes 0-1 -> 0
        # band 1: window 2-5 plus leftover 6-7, weights 5+6+7+8 over cursor 8
        np.testing.assert_allclose(bands, [0.0, 32.5])

    def test_cursor_divisor(self):
        bands = CumulativeStrategy().aggregate(np.ones(8), 2)
        # (1 + 2) / 2 * 10 and (3 + ... + 8) / 8 * 10
        np.testing.assert_allclose(bands, [15.0, 41.25])

    def test_divide_by_window(self):
        bands = CumulativeStrategy(divide_by_window=True).aggregate(np.ones(8), 2)
        np.testing.assert_allclose(bands, [15.0, 55.0])

    def test_classic_layout(self):
        layout = CumulativeStrategy().layout(512, 8)
        widths = (layout.ends - layout.starts).tolist()
        # 2, 4, ..., 256 with the two leftover samples in the last band
        assert widths == [2, 4, 8, 16, 32, 64, 128, 258]

    @pytest.mark.parametrize("sample_size,num_bands", [(512, 8), (64, 8), (64, 3), (8192, 20), (64, 1)])
    def test_every_sample_in_exactly_one_band(self, sample_size, num_bands):
        layout = CumulativeStrategy().layout(sample_size, num_bands)
        assert layout.starts[0] == 0
        assert layout.ends[-1] == sample_size
        np.testing.assert_array_equal(layout.starts[1:], layout.ends[:-1])
        assert int(np.sum(layout.ends - layout.starts)) == sample_size

    def test_exhausted_bands_are_zero(self):
        # 64 samples run out after six bands
        bands = CumulativeStrategy().aggregate(np.ones(64), 8)
        assert bands[6] == 0.0
        assert bands[5] > 0.0
        assert np.all(np.isfinite(bands))

    def test_weighted_sum_is_conserved(self):
        spectrum = np.random.default_rng(3).random(512)
        strategy = CumulativeStrategy(divide_by_window=True)
        layout = strategy.layout(512, 8)
        bands = strategy.aggregate(spectrum, 8)
        widths = layout.ends - layout.starts
        weighted = spectrum * np.arange(1, 513)
        assert np.sum(bands / 10.0 * widths) == pytest.approx(np.sum(weighted))


# ---------------------------------------------------------------------------
# Aggregator selection
# ---------------------------------------------------------------------------

class TestBandAggregator:
    def test_from_config_picks_range(self, range_config):
        agg = BandAggregator.from_config(range_config.clamped())
        assert isinstance(agg.strategy, RangeSplitStrategy)
        assert agg.strategy.sample_rate == 128.0

    def test_from_config_picks_cumulative(self, cumulative_config):
        agg = BandAggregator.from_config(cumulative_config.clamped())
        assert isinstance(agg.strategy, CumulativeStrategy)
        assert len(agg.aggregate(np.ones(512))) == 8

    def test_source_sample_rate_used_when_unset(self):
        agg = BandAggregator.from_config(AnalyzerConfig(), sample_rate=22050.0)
        assert agg.strategy.sample_rate == 22050.0

    def test_one_shot_aggregate(self):
        bands = aggregate([0, 0, 0, 0, 1, 1, 1, 1], 2, BandStrategy.CUMULATIVE)
        np.testing.assert_allclose(bands, [0.0, 32.5])

"""Shared fixtures for bandscope tests."""

import numpy as np
import pytest

from bandscope.core.config import AnalyzerConfig, BandStrategy

TEST_SR = 22050


@pytest.fixture
def pure_sine():
    """One second of a 440 Hz sine."""
    sr = TEST_SR
    t = np.linspace(0, 1.0, sr, endpoint=False)
    y = (0.5 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    return y, sr


@pytest.fixture
def mixed_signal():
    """Two seconds of bass + mid tone with a click every half second."""
    sr = TEST_SR
    t = np.linspace(0, 2.0, 2 * sr, endpoint=False)
    y = 0.3 * np.sin(2 * np.pi * 80.0 * t) + 0.2 * np.sin(2 * np.pi * 1000.0 * t)
    for start in range(0, len(y), sr // 2):
        y[start:start + 200] += np.random.default_rng(start).uniform(-0.5, 0.5, 200)
    return y.astype(np.float32), sr


@pytest.fixture
def range_config():
    """Small range-split config with exactly 1 Hz per bin."""
    return AnalyzerConfig(
        sample_size=64,
        num_bands=4,
        strategy=BandStrategy.RANGE,
        start_frequency=0.0,
        end_frequency=63.0,
        sample_rate=128.0,
    )


@pytest.fixture
def cumulative_config():
    return AnalyzerConfig(
        sample_size=512,
        num_bands=8,
        strategy=BandStrategy.CUMULATIVE,
    )


@pytest.fixture
def random_spectra():
    """Forty random magnitude frames of 512 bins with varying loudness."""
    rng = np.random.default_rng(7)
    gains = rng.uniform(0.0, 2.0, size=(40, 1))
    return rng.random((40, 512)) * gains

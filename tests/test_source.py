"""Tests for spectrum sources."""

import numpy as np
import pytest

from bandscope.core.config import FFTWindow
from bandscope.core.source import ArraySpectrumSource, SignalSpectrumSource

SR = 8000
BINS = 256  # 15.625 Hz per bin at 8 kHz


def _sine(freq, seconds=1.0, amplitude=1.0):
    t = np.arange(int(SR * seconds)) / SR
    return amplitude * np.sin(2 * np.pi * freq * t)


class TestSignalSpectrumSource:
    def test_peak_at_expected_bin(self):
        source = SignalSpectrumSource(sample_rate=SR)
        source.push(_sine(15.625 * 32))

        out = np.zeros(BINS)
        source.get_spectrum(out)
        assert int(np.argmax(out)) == 32
        assert np.all(out >= 0.0)

    @pytest.mark.parametrize("window", list(FFTWindow))
    def test_all_windows(self, window):
        source = SignalSpectrumSource(sample_rate=SR)
        source.push(_sine(1000.0))
        out = np.zeros(BINS)
        source.get_spectrum(out, window=window)
        assert int(np.argmax(out)) == 64

    def test_silence_before_any_push(self):
        out = np.ones(BINS)
        SignalSpectrumSource(sample_rate=SR).get_spectrum(out)
        np.testing.assert_array_equal(out, np.zeros(BINS))

    def test_chunked_push_matches_single_push(self):
        y = _sine(440.0) + 0.3 * _sine(2000.0)

        whole = SignalSpectrumSource(sample_rate=SR, capacity=1024)
        whole.push(y)

        chunked = SignalSpectrumSource(sample_rate=SR, capacity=1024)
        for start in range(0, len(y), 100):
            chunked.push(y[start:start + 100])

        a, b = np.zeros(BINS), np.zeros(BINS)
        whole.get_spectrum(a)
        chunked.get_spectrum(b)
        np.testing.assert_allclose(a, b, atol=1e-12)

    def test_channel_selection(self):
        stereo = np.vstack([_sine(1000.0), np.zeros(SR)])
        source = SignalSpectrumSource(sample_rate=SR, channels=2)
        source.push(stereo)

        left, right, mix = np.zeros(BINS), np.zeros(BINS), np.zeros(BINS)
        source.get_spectrum(left, channel=0)
        source.get_spectrum(right, channel=1)
        source.get_spectrum(mix, channel=-1)

        assert right.max() < 1e-9
        assert mix[64] == pytest.approx(left[64] / 2)

    def test_mono_into_stereo_buffer(self):
        source = SignalSpectrumSource(sample_rate=SR, channels=2)
        source.push(_sine(1000.0))
        out = np.zeros(BINS)
        source.get_spectrum(out, channel=1)
        assert int(np.argmax(out)) == 64

    def test_clear(self):
        source = SignalSpectrumSource(sample_rate=SR)
        source.push(_sine(1000.0))
        source.clear()
        out = np.zeros(BINS)
        source.get_spectrum(out)
        assert out.max() == 0.0


class TestArraySpectrumSource:
    def test_pads_and_truncates(self):
        source = ArraySpectrumSource([np.ones(4), np.arange(10.0)])
        out = np.full(6, 7.0)

        source.get_spectrum(out)
        np.testing.assert_array_equal(out, [1, 1, 1, 1, 0, 0])

        source.get_spectrum(out)
        np.testing.assert_array_equal(out, [0, 1, 2, 3, 4, 5])

    def test_holds_last_frame(self):
        source = ArraySpectrumSource([np.zeros(3), np.ones(3)])
        out = np.zeros(3)
        for _ in range(4):
            source.get_spectrum(out)
        np.testing.assert_array_equal(out, np.ones(3))

    def test_loops(self):
        source = ArraySpectrumSource([np.zeros(3), np.ones(3)], loop=True)
        out = np.zeros(3)
        for _ in range(3):
            source.get_spectrum(out)
        np.testing.assert_array_equal(out, np.zeros(3))

    def test_empty(self):
        out = np.ones(3)
        ArraySpectrumSource([]).get_spectrum(out)
        np.testing.assert_array_equal(out, np.zeros(3))

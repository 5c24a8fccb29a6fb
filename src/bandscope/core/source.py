"""
Spectrum sources.

A spectrum source fills a caller-provided buffer with the magnitude spectrum
of the current audio frame.  The analyzer only relies on the buffer being
the same length on every call and on values being proportional to spectral
magnitude.

``SignalSpectrumSource`` computes that spectrum from pushed PCM samples with
``numpy.fft``; ``ArraySpectrumSource`` replays spectra that were computed
elsewhere.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Union

import librosa
import numpy as np
from scipy import signal as scipy_signal

from bandscope.core.config import FFTWindow


class SpectrumSource(ABC):
    """Supplies one magnitude spectrum per frame."""

    sample_rate: Optional[float] = None

    @abstractmethod
    def get_spectrum(
        self,
        out: np.ndarray,
        channel: int = 0,
        window: FFTWindow = FFTWindow.BLACKMAN,
    ) -> None:
        """
        Fill ``out`` in place with non-negative magnitudes.

        Args:
            out: Destination buffer; its length is the spectrum size.
            channel: Channel index, or a negative value to mix all channels.
            window: Spectral window to apply before the transform.
        """


class ArraySpectrumSource(SpectrumSource):
    """
    Replays precomputed spectra, one per call.

    Frames shorter than the destination are zero-padded and longer ones are
    truncated.  After the last frame the source keeps returning it, or starts
    over when ``loop`` is set.
    """

    def __init__(
        self,
        frames: Iterable[np.ndarray],
        sample_rate: Optional[float] = None,
        loop: bool = False,
    ):
        self.frames = [np.asarray(f, dtype=np.float64) for f in frames]
        self.sample_rate = sample_rate
        self.loop = loop
        self._index = 0

    def get_spectrum(self, out, channel=0, window=FFTWindow.BLACKMAN):
        out[:] = 0.0
        if not self.frames:
            return

        if self._index >= len(self.frames):
            self._index = 0 if self.loop else len(self.frames) - 1
        frame = self.frames[self._index]
        self._index += 1

        n = min(len(out), len(frame))
        out[:n] = frame[:n]


class SignalSpectrumSource(SpectrumSource):
    """
    Magnitude spectrum of the most recent pushed audio.

    For a spectrum of ``N`` bins the transform runs over the last ``2 * N``
    samples, so bin ``k`` is centred on ``k * (sample_rate / 2) / N`` Hz.
    Magnitudes are scaled by ``2 / fft_size``; a full-scale sine peaks near
    the window's coherent gain.
    """

    def __init__(self, sample_rate: float = 44100, capacity: int = 16384, channels: int = 1):
        """
        Initialize the source.

        Args:
            sample_rate: Sample rate of the pushed audio in Hz.
            capacity: Ring buffer length in samples per channel.
            channels: Channel count of the pushed audio.
        """
        self.sample_rate = float(sample_rate)
        self.channels = max(1, int(channels))
        self._buffer = np.zeros((self.channels, capacity), dtype=np.float64)
        self._capacity = capacity
        self._write_pos = 0
        self._windows: dict[tuple[FFTWindow, int], np.ndarray] = {}

    def push(self, samples: np.ndarray) -> None:
        """
        Append audio samples.

        Accepts a 1-D mono array or a 2-D ``(channels, n)`` array, matching
        ``librosa.load(mono=False)``.
        """
        data = np.atleast_2d(np.asarray(samples, dtype=np.float64))
        if data.shape[0] != self.channels:
            # Mono into a multi-channel buffer, or a channel count change
            data = np.broadcast_to(data.mean(axis=0), (self.channels, data.shape[1]))

        n = data.shape[1]
        if n >= self._capacity:
            self._buffer[:] = data[:, -self._capacity:]
            self._write_pos = 0
            return

        end = self._write_pos + n
        if end <= self._capacity:
            self._buffer[:, self._write_pos:end] = data
        else:
            first = self._capacity - self._write_pos
            self._buffer[:, self._write_pos:] = data[:, :first]
            self._buffer[:, :n - first] = data[:, first:]
        self._write_pos = end % self._capacity

    def clear(self) -> None:
        self._buffer[:] = 0.0
        self._write_pos = 0

    def _latest(self, n: int, channel: int) -> np.ndarray:
        """The last ``n`` samples of a channel (or the mix), oldest first."""
        n = min(n, self._capacity)
        idx = (self._write_pos - n + np.arange(n)) % self._capacity
        if channel < 0:
            return self._buffer[:, idx].mean(axis=0)
        return self._buffer[min(channel, self.channels - 1), idx]

    def _window(self, window: FFTWindow, size: int) -> np.ndarray:
        key = (window, size)
        if key not in self._windows:
            self._windows[key] = scipy_signal.get_window(
                FFTWindow(window).scipy_name, size, fftbins=True
            )
        return self._windows[key]

    def get_spectrum(self, out, channel=0, window=FFTWindow.BLACKMAN):
        bins = len(out)
        fft_size = 2 * bins

        samples = self._latest(fft_size, channel)
        if len(samples) < fft_size:
            samples = np.concatenate([np.zeros(fft_size - len(samples)), samples])

        spectrum = np.abs(np.fft.rfft(samples * self._window(window, fft_size)))
        out[:] = spectrum[:bins] * (2.0 / fft_size)


def load_audio(
    audio_path: Union[str, Path],
    sr: int | None = None,
    mono: bool = False,
) -> tuple[np.ndarray, int]:
    """
    Load audio from file.

    Args:
        audio_path: Path to audio file (wav, mp3, flac).
        sr: Target sample rate. None preserves original.
        mono: Downmix to mono if True.

    Returns:
        Tuple of (audio_signal, sample_rate).  Multi-channel signals are
        shaped ``(channels, n)``.
    """
    y, sr_out = librosa.load(audio_path, sr=sr, mono=mono)
    return y, sr_out

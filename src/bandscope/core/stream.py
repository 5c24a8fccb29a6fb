"""
Real-time band analysis for live visualization.

Architecture Overview
---------------------
::

    SpectrumSource.get_spectrum(buffer)
        │
        ▼
    SpectrumAnalyzer.update()
        │
        ├─► BandAggregator      raw band values
        ├─► DecayBuffer         peak hold + accelerating fall
        ├─► PeakNormalizer      [0,1] raw / decay bands
        ├─► AmplitudeAggregator [0,1] overall level
        │
        └─► BandSnapshot        polled by the renderer once per frame

Threading
---------
An analyzer is driven by exactly one thread, one ``update()`` per rendered
frame.  Nothing inside blocks or performs I/O.  Separate instances share no
state and may run on separate threads.

Graceful degradation
--------------------
A bad frame never stops the stream: malformed spectra are sanitized, a
missing source falls back to ``fallback_source`` or leaves the previous
snapshot in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from bandscope.core.analyzer import BandAggregator
from bandscope.core.config import AnalyzerConfig
from bandscope.core.polisher import (
    AmplitudeAggregator,
    DecayBuffer,
    DecayParams,
    PeakNormalizer,
)
from bandscope.core.source import SpectrumSource

logger = logging.getLogger(__name__)


def _empty() -> np.ndarray:
    return np.zeros(0)


@dataclass(frozen=True)
class BandSnapshot:
    """
    Read-only view of one analyzed frame.

    Arrays are copies; consumers may keep them across frames.
    """

    frame_index: int = 0
    raw_bands: np.ndarray = field(default_factory=_empty)
    decay_bands: np.ndarray = field(default_factory=_empty)
    normalized_raw: np.ndarray = field(default_factory=_empty)
    normalized_decay: np.ndarray = field(default_factory=_empty)
    amplitude: float = 0.0
    amplitude_buffered: float = 0.0

    @property
    def num_bands(self) -> int:
        return len(self.raw_bands)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_index": self.frame_index,
            "raw_bands": self.raw_bands.tolist(),
            "decay_bands": self.decay_bands.tolist(),
            "normalized_raw": self.normalized_raw.tolist(),
            "normalized_decay": self.normalized_decay.tolist(),
            "amplitude": self.amplitude,
            "amplitude_buffered": self.amplitude_buffered,
        }


class SpectrumAnalyzer:
    """
    Per-frame spectrum to band pipeline.

    Parameters
    ----------
    config:
        Analyzer configuration.  Out-of-range values are clamped.
    source:
        Primary spectrum source.  May be None when spectra are passed to
        :meth:`update` directly.  Assigning a new source later
        re-reads its ``sample_rate`` unless the config pins one.
    fallback_source:
        Used whenever ``source`` is None.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        source: Optional[SpectrumSource] = None,
        fallback_source: Optional[SpectrumSource] = None,
    ):
        self._source = source
        self._fallback_source = fallback_source
        self._warned_no_source = False
        self._build(config or AnalyzerConfig())

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _build(self, config: AnalyzerConfig) -> None:
        self.config = config.clamped()
        cfg = self.config

        self._spectrum = np.zeros(cfg.sample_size, dtype=np.float64)
        self._aggregator = BandAggregator.from_config(cfg, self._source_sample_rate())
        self._decay = DecayBuffer(
            cfg.num_bands,
            DecayParams(
                base_rate=cfg.decay_base_rate,
                growth=cfg.decay_growth,
                max_rate=cfg.max_decay_rate,
            ),
        )
        self._normalizer = PeakNormalizer(cfg.num_bands, epsilon=cfg.epsilon)
        self._amplitude = AmplitudeAggregator(epsilon=cfg.epsilon)

        self._frame_index = 0
        self._snapshot = BandSnapshot(
            raw_bands=np.zeros(cfg.num_bands),
            decay_bands=np.zeros(cfg.num_bands),
            normalized_raw=np.zeros(cfg.num_bands),
            normalized_decay=np.zeros(cfg.num_bands),
        )

    def _source_sample_rate(self) -> Optional[float]:
        for src in (self._source, self._fallback_source):
            if src is not None and getattr(src, "sample_rate", None):
                return float(src.sample_rate)
        return None

    def _resolve_sample_rate(self) -> None:
        # Only the range layout depends on the rate; peaks and decay are kept.
        if self.config.sample_rate is None:
            self._aggregator = BandAggregator.from_config(
                self.config, self._source_sample_rate()
            )

    @property
    def source(self) -> Optional[SpectrumSource]:
        return self._source

    @source.setter
    def source(self, source: Optional[SpectrumSource]) -> None:
        self._source = source
        self._resolve_sample_rate()

    @property
    def fallback_source(self) -> Optional[SpectrumSource]:
        return self._fallback_source

    @fallback_source.setter
    def fallback_source(self, source: Optional[SpectrumSource]) -> None:
        self._fallback_source = source
        self._resolve_sample_rate()

    def reconfigure(self, config: AnalyzerConfig) -> None:
        """
        Apply a new configuration.

        Always a full reset: every array is rebuilt, peaks return to epsilon
        and the decay envelope to zero.
        """
        old = self.config
        self._build(config)
        logger.info(
            "Analyzer reconfigured: %d bands / %d samples (%s) -> %d bands / %d samples (%s)",
            old.num_bands, old.sample_size, old.strategy.value,
            self.config.num_bands, self.config.sample_size, self.config.strategy.value,
        )

    def reset(self) -> None:
        """Forget all adaptation history, keeping the configuration."""
        self._build(self.config)

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def _acquire(self) -> bool:
        """Fill the spectrum buffer from a source; False if none is usable."""
        src = self.source if self.source is not None else self.fallback_source
        if src is None:
            if not self._warned_no_source:
                logger.warning("No spectrum source configured, skipping frames")
                self._warned_no_source = True
            return False

        try:
            src.get_spectrum(self._spectrum, self.config.channel, self.config.fft_window)
        except Exception:
            logger.exception("Spectrum source %s failed, skipping frame", type(src).__name__)
            return False
        return True

    def _sanitize(self, spectrum: np.ndarray) -> np.ndarray:
        spectrum = np.asarray(spectrum, dtype=np.float64).ravel()
        size = self.config.sample_size
        if len(spectrum) != size:
            logger.debug("Spectrum length %d != %d, resizing", len(spectrum), size)
            fitted = np.zeros(size, dtype=np.float64)
            n = min(size, len(spectrum))
            fitted[:n] = spectrum[:n]
            spectrum = fitted
        spectrum = np.nan_to_num(spectrum, nan=0.0, posinf=0.0, neginf=0.0)
        return np.maximum(spectrum, 0.0)

    def update(self, spectrum: Optional[np.ndarray] = None) -> BandSnapshot:
        """
        Analyze one frame.

        Args:
            spectrum: Magnitude spectrum for this frame.  When omitted the
                configured source is polled.

        Returns:
            The new snapshot, or the previous one if no spectrum was
            available.
        """
        if spectrum is None:
            if not self._acquire():
                return self._snapshot
            spectrum = self._spectrum

        spectrum = self._sanitize(spectrum)

        raw = self._aggregator.aggregate(spectrum)
        decay = self._decay.update(raw)
        normalized_raw, normalized_decay = self._normalizer.update(raw, decay)
        amplitude, amplitude_buffered = self._amplitude.update(
            normalized_raw, normalized_decay
        )

        self._frame_index += 1
        self._snapshot = BandSnapshot(
            frame_index=self._frame_index,
            raw_bands=raw.copy(),
            decay_bands=decay.copy(),
            normalized_raw=normalized_raw.copy(),
            normalized_decay=normalized_decay.copy(),
            amplitude=amplitude,
            amplitude_buffered=amplitude_buffered,
        )
        return self._snapshot

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> BandSnapshot:
        return self._snapshot

    @property
    def frame_index(self) -> int:
        return self._frame_index

    @property
    def raw_bands(self) -> np.ndarray:
        return self._snapshot.raw_bands

    @property
    def decay_bands(self) -> np.ndarray:
        return self._snapshot.decay_bands

    @property
    def decay_rate(self) -> np.ndarray:
        return self._decay.rates.copy()

    @property
    def normalized_raw(self) -> np.ndarray:
        return self._snapshot.normalized_raw

    @property
    def normalized_decay(self) -> np.ndarray:
        return self._snapshot.normalized_decay

    @property
    def amplitude(self) -> float:
        return self._snapshot.amplitude

    @property
    def amplitude_buffered(self) -> float:
        return self._snapshot.amplitude_buffered

    @property
    def peak_per_band(self) -> np.ndarray:
        return self._normalizer.peaks.copy()

    @property
    def peak_amplitude(self) -> float:
        return self._amplitude.peak

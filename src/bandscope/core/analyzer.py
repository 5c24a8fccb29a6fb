"""
Band aggregation module.

Splits a magnitude spectrum into a fixed number of perceptual bands.
Two strategies are available:

* ``RangeSplitStrategy`` maps an explicit frequency range onto the bands
  with a 1.5 power curve, so low frequencies get finer resolution.
* ``CumulativeStrategy`` walks the spectrum from bin 0 in power-of-two
  sized groups, giving the classic eight-band layout.

Neither strategy raises on odd input: empty ranges produce 0 and reads are
always kept inside the spectrum.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from bandscope.core.config import AnalyzerConfig, BandStrategy, DEFAULT_SAMPLE_RATE


@dataclass
class BandLayout:
    """Half-open bin ranges ``[starts[i], ends[i])`` for each band."""

    starts: np.ndarray
    ends: np.ndarray

    @property
    def num_bands(self) -> int:
        return len(self.starts)


class BandingStrategy(ABC):
    """Turns one spectrum frame into ``num_bands`` values."""

    GAIN: float = 1.0

    def __init__(self):
        self._layouts: Dict[Tuple[int, int], BandLayout] = {}

    @abstractmethod
    def layout(self, sample_size: int, num_bands: int) -> BandLayout:
        """Compute the bin range of every band for a given spectrum size."""

    def cached_layout(self, sample_size: int, num_bands: int) -> BandLayout:
        """
        Layout for this shape, computed once.

        Strategy parameters are fixed after construction, so the layout only
        depends on the spectrum size and band count.
        """
        key = (sample_size, num_bands)
        if key not in self._layouts:
            self._layouts[key] = self.layout(sample_size, num_bands)
        return self._layouts[key]

    @abstractmethod
    def aggregate(self, spectrum: np.ndarray, num_bands: int) -> np.ndarray:
        """
        Aggregate a spectrum into bands.

        Args:
            spectrum: 1-D magnitude array (non-negative).
            num_bands: Number of output bands.

        Returns:
            Array of ``num_bands`` band values, index 0 = lowest frequency.
        """


class RangeSplitStrategy(BandingStrategy):
    """
    Mean magnitude over power-curve spaced bins of a frequency range.

    Band ``i`` covers ``t**1.5`` of the range for ``t`` in
    ``[i / n, (i + 1) / n)``.
    """

    GAIN = 100.0
    CURVE = 1.5

    def __init__(
        self,
        start_frequency: float = 20.0,
        end_frequency: float = 15000.0,
        sample_rate: float = DEFAULT_SAMPLE_RATE,
    ):
        super().__init__()
        self.start_frequency = start_frequency
        self.end_frequency = end_frequency
        self.sample_rate = sample_rate

    def layout(self, sample_size: int, num_bands: int) -> BandLayout:
        """Compute the bin range of every band for a given spectrum size."""
        hz_per_bin = (self.sample_rate / 2.0) / sample_size

        start_bin = math.floor(self.start_frequency / hz_per_bin)
        end_bin = math.ceil(self.end_frequency / hz_per_bin)
        start_bin = min(max(start_bin, 0), sample_size - 1)
        end_bin = min(max(end_bin, 0), sample_size - 1)
        total_bins = min(max(end_bin - start_bin, 1), sample_size)

        t = np.arange(num_bands + 1, dtype=np.float64) / num_bands
        edges = start_bin + np.floor(t ** self.CURVE * total_bins).astype(np.int64)

        starts = edges[:-1].copy()
        ends = edges[1:].copy()
        collapsed = ends <= starts
        ends[collapsed] = starts[collapsed] + 1

        return BandLayout(
            starts=np.clip(starts, 0, sample_size),
            ends=np.clip(ends, 0, sample_size),
        )

    def aggregate(self, spectrum: np.ndarray, num_bands: int) -> np.ndarray:
        layout = self.cached_layout(len(spectrum), num_bands)
        bands = np.zeros(num_bands, dtype=np.float64)

        for i in range(num_bands):
            window = spectrum[layout.starts[i]:layout.ends[i]]
            if len(window) > 0:
                bands[i] = float(np.mean(window))

        return bands * self.GAIN


class CumulativeStrategy(BandingStrategy):
    """
    Index-weighted sums over consecutive power-of-two sample groups.

    Band ``i`` takes the next ``2**i * 2`` samples.  Each sample is weighted
    by its 1-based position in the whole spectrum and the sum is divided by
    the number of samples consumed so far (the cursor), unless
    ``divide_by_window`` is set.  Samples left after the last band are folded
    into it.
    """

    GAIN = 10.0

    def __init__(self, divide_by_window: bool = False):
        super().__init__()
        self.divide_by_window = divide_by_window

    def layout(self, sample_size: int, num_bands: int) -> BandLayout:
        starts = np.zeros(num_bands, dtype=np.int64)
        ends = np.zeros(num_bands, dtype=np.int64)

        cursor = 0
        for i in range(num_bands):
            remaining = sample_size - cursor
            # Python ints: 2**i is exact for any band count
            width = min(2 ** i * 2, remaining)
            if width <= 0:
                width = 1
            starts[i] = min(cursor, sample_size)
            cursor = min(cursor + width, sample_size)
            ends[i] = cursor

        if num_bands > 0:
            ends[-1] = sample_size

        return BandLayout(starts=starts, ends=ends)

    def aggregate(self, spectrum: np.ndarray, num_bands: int) -> np.ndarray:
        layout = self.cached_layout(len(spectrum), num_bands)
        weighted = spectrum * np.arange(1, len(spectrum) + 1, dtype=np.float64)
        bands = np.zeros(num_bands, dtype=np.float64)

        for i in range(num_bands):
            start, end = int(layout.starts[i]), int(layout.ends[i])
            total = float(np.sum(weighted[start:end]))
            divisor = (end - start) if self.divide_by_window else end
            if divisor > 0:
                bands[i] = total / divisor

        return bands * self.GAIN


class BandAggregator:
    """
    Strategy-selectable spectrum to band conversion.

    The strategy is chosen once from an :class:`AnalyzerConfig`; a new
    aggregator is built on reconfiguration.
    """

    def __init__(self, strategy: BandingStrategy, num_bands: int):
        self.strategy = strategy
        self.num_bands = num_bands

    @classmethod
    def from_config(
        cls,
        config: AnalyzerConfig,
        sample_rate: Optional[float] = None,
    ) -> "BandAggregator":
        """
        Build an aggregator for a (clamped) config.

        Args:
            config: Analyzer configuration.
            sample_rate: Rate reported by the spectrum source, used when the
                config does not pin one.
        """
        if BandStrategy(config.strategy) is BandStrategy.CUMULATIVE:
            strategy: BandingStrategy = CumulativeStrategy(
                divide_by_window=config.divide_by_window,
            )
        else:
            strategy = RangeSplitStrategy(
                start_frequency=config.start_frequency,
                end_frequency=config.end_frequency,
                sample_rate=config.sample_rate or sample_rate or DEFAULT_SAMPLE_RATE,
            )
        return cls(strategy, config.num_bands)

    def aggregate(self, spectrum: np.ndarray) -> np.ndarray:
        return self.strategy.aggregate(spectrum, self.num_bands)


def aggregate(
    spectrum: np.ndarray,
    num_bands: int,
    strategy: BandStrategy = BandStrategy.RANGE,
    **params,
) -> np.ndarray:
    """
    One-shot band aggregation.

    Extra keyword arguments go to the strategy constructor
    (``start_frequency``, ``end_frequency``, ``sample_rate`` for the range
    strategy, ``divide_by_window`` for the cumulative one).
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    if BandStrategy(strategy) is BandStrategy.CUMULATIVE:
        impl: BandingStrategy = CumulativeStrategy(**params)
    else:
        impl = RangeSplitStrategy(**params)
    return impl.aggregate(spectrum, num_bands)

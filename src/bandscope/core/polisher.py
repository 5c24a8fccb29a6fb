"""
Signal smoothing and normalization module.

Turns raw band values into stable, visualization-ready signals:

* ``DecayBuffer`` holds each band's peak and lets it fall with accelerating
  speed, like the ballistics of a hardware level meter.
* ``PeakNormalizer`` divides by the largest value seen so far, so output is
  always in [0.0, 1.0] without any fixed calibration.
* ``AmplitudeAggregator`` folds the normalized bands into one overall level.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

EPSILON = 1e-4


@dataclass
class DecayParams:
    """Decay envelope constants."""

    base_rate: float = 0.005   # step applied on the first falling frame
    growth: float = 1.2        # per-frame multiplier of the step
    max_rate: float = 1e6      # keeps the step finite on long silences


def apply_decay(
    decay_bands: np.ndarray,
    raw_bands: np.ndarray,
    decay_rate: np.ndarray,
    params: DecayParams | None = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Advance the decay envelope by one frame.

    Bands whose raw value rises above the held value snap to it and restart
    the fall at ``base_rate``.  The others drop by their current step, which
    then grows by ``growth``.  Held values never go below 0.

    Args:
        decay_bands: Held values from the previous frame.
        raw_bands: This frame's raw band values.
        decay_rate: Per-band fall step from the previous frame.
        params: Envelope constants, ``DecayParams()`` when omitted.

    Returns:
        Tuple of (new held values, new fall steps).  Inputs are not modified.
    """
    params = params or DecayParams()
    rising = raw_bands > decay_bands

    new_decay = np.where(rising, raw_bands, decay_bands - decay_rate)
    new_rate = np.where(
        rising,
        params.base_rate,
        np.minimum(decay_rate * params.growth, params.max_rate),
    )

    return np.maximum(new_decay, 0.0), new_rate


class DecayBuffer:
    """Per-band peak hold with accelerating fall."""

    def __init__(self, num_bands: int, params: DecayParams | None = None):
        self.params = params or DecayParams()
        self.values = np.zeros(num_bands, dtype=np.float64)
        self.rates = np.zeros(num_bands, dtype=np.float64)

    def update(self, raw_bands: np.ndarray) -> np.ndarray:
        self.values, self.rates = apply_decay(
            self.values, raw_bands, self.rates, self.params
        )
        return self.values

    def reset(self) -> None:
        self.values = np.zeros_like(self.values)
        self.rates = np.zeros_like(self.rates)


def normalize(value, running_peak):
    """
    Normalize against a running peak.

    Works element-wise on arrays as well as on scalars.

    Returns:
        Tuple of (value / updated peak clamped to [0, 1], updated peak).
    """
    peak = np.maximum(running_peak, value)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.clip(np.where(peak > 0, value / peak, 0.0), 0.0, 1.0)
    if np.ndim(ratio) == 0:
        return float(ratio), float(peak)
    return ratio, peak


class PeakNormalizer:
    """
    Per-band adaptive normalization.

    Only raw values move the peak.  Held (decayed) values are divided by the
    same peak, so they can never push it upward.
    """

    def __init__(self, num_bands: int, epsilon: float = EPSILON):
        self.epsilon = epsilon
        self.peaks = np.full(num_bands, epsilon, dtype=np.float64)

    def update(
        self,
        raw_bands: np.ndarray,
        decay_bands: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Return (normalized raw, normalized decay) for one frame."""
        normalized_raw, self.peaks = normalize(raw_bands, self.peaks)
        with np.errstate(divide="ignore", invalid="ignore"):
            normalized_decay = np.where(self.peaks > 0, decay_bands / self.peaks, 0.0)
        return normalized_raw, np.clip(normalized_decay, 0.0, 1.0)

    def reset(self) -> None:
        self.peaks = np.full_like(self.peaks, self.epsilon)


class AmplitudeAggregator:
    """Overall level from the normalized bands, with its own running peak."""

    def __init__(self, epsilon: float = EPSILON):
        self.epsilon = epsilon
        self.peak = epsilon
        self.amplitude = 0.0
        self.amplitude_buffered = 0.0

    def update(
        self,
        normalized_raw: np.ndarray,
        normalized_decay: np.ndarray,
    ) -> Tuple[float, float]:
        amplitude_raw = float(np.sum(normalized_raw))
        amplitude_decay = float(np.sum(normalized_decay))

        self.peak = max(self.peak, amplitude_raw)
        if self.peak <= 0:
            self.amplitude = 0.0
            self.amplitude_buffered = 0.0
        else:
            self.amplitude = min(max(amplitude_raw / self.peak, 0.0), 1.0)
            self.amplitude_buffered = min(max(amplitude_decay / self.peak, 0.0), 1.0)

        return self.amplitude, self.amplitude_buffered

    def reset(self) -> None:
        self.peak = self.epsilon
        self.amplitude = 0.0
        self.amplitude_buffered = 0.0

"""
Analyzer configuration and named presets.

Settings frequently come from live-editable sources (UI sliders, JSON files),
so out-of-range values are coerced into range instead of rejected.  Presets
are loaded from a packaged JSON file shared with any front end.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields
from enum import Enum
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 64
MAX_SAMPLE_SIZE = 8192
MIN_BANDS = 1
MAX_BANDS = 512

DEFAULT_SAMPLE_RATE = 48000.0


class BandStrategy(str, Enum):
    """How the spectrum is split into bands."""

    RANGE = "range"            # power-curve split of an explicit Hz range
    CUMULATIVE = "cumulative"  # power-of-two sample groups from bin 0


class FFTWindow(str, Enum):
    """Spectral window names, mapped onto ``scipy.signal.get_window``."""

    RECTANGULAR = "rectangular"
    TRIANGLE = "triangle"
    HAMMING = "hamming"
    HANNING = "hanning"
    BLACKMAN = "blackman"
    BLACKMAN_HARRIS = "blackman_harris"

    @property
    def scipy_name(self) -> str:
        return _SCIPY_WINDOWS[self]


_SCIPY_WINDOWS = {
    FFTWindow.RECTANGULAR: "boxcar",
    FFTWindow.TRIANGLE: "triang",
    FFTWindow.HAMMING: "hamming",
    FFTWindow.HANNING: "hann",
    FFTWindow.BLACKMAN: "blackman",
    FFTWindow.BLACKMAN_HARRIS: "blackmanharris",
}


@dataclass
class AnalyzerConfig:
    """Configuration for a :class:`~bandscope.core.stream.SpectrumAnalyzer`."""

    sample_size: int = 4096
    num_bands: int = 64
    fft_window: FFTWindow = FFTWindow.BLACKMAN
    strategy: BandStrategy = BandStrategy.RANGE

    # Range strategy only
    start_frequency: float = 20.0
    end_frequency: float = 15000.0
    sample_rate: Optional[float] = None  # None = ask the spectrum source

    # Source channel; negative mixes all channels
    channel: int = 0

    # Cumulative strategy: divide each band by its own window size
    # instead of the running cursor position.
    divide_by_window: bool = False

    # Decay envelope
    decay_base_rate: float = 0.005
    decay_growth: float = 1.2
    max_decay_rate: float = 1e6

    # Starting value for every running peak
    epsilon: float = 1e-4

    def clamped(self) -> "AnalyzerConfig":
        """
        Return a copy with every field coerced into its valid range.

        Each adjustment is logged at warning level.
        """
        strategy = _coerce_enum(BandStrategy, self.strategy, BandStrategy.RANGE)
        window = _coerce_enum(FFTWindow, self.fft_window, FFTWindow.BLACKMAN)

        sample_size = _power_of_two_floor(
            _clamp_int(self.sample_size, MIN_SAMPLE_SIZE, MAX_SAMPLE_SIZE)
        )
        num_bands = _clamp_int(self.num_bands, MIN_BANDS, MAX_BANDS)

        start = max(0.0, _clamp_float(self.start_frequency, 20.0))
        end = max(0.0, _clamp_float(self.end_frequency, 15000.0))
        if end < start:
            start, end = end, start

        sample_rate = None
        if self.sample_rate is not None:
            sample_rate = _clamp_float(self.sample_rate, None)
            if sample_rate is not None and not sample_rate > 0:
                sample_rate = None

        epsilon = _clamp_float(self.epsilon, 1e-4)
        if not epsilon > 0:
            epsilon = 1e-4
        base_rate = max(0.0, _clamp_float(self.decay_base_rate, 0.005))
        growth = max(1.0, _clamp_float(self.decay_growth, 1.2))
        max_rate = max(base_rate, _clamp_float(self.max_decay_rate, 1e6))

        result = AnalyzerConfig(
            sample_size=sample_size,
            num_bands=num_bands,
            fft_window=window,
            strategy=strategy,
            start_frequency=start,
            end_frequency=end,
            sample_rate=sample_rate,
            channel=_to_int(self.channel, 0),
            divide_by_window=bool(self.divide_by_window),
            decay_base_rate=base_rate,
            decay_growth=growth,
            max_decay_rate=max_rate,
            epsilon=epsilon,
        )

        for f in fields(AnalyzerConfig):
            before = getattr(self, f.name)
            after = getattr(result, f.name)
            if before != after:
                logger.warning("Config %s=%r out of range, using %r", f.name, before, after)

        return result

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["fft_window"] = FFTWindow(self.fft_window).value
        data["strategy"] = BandStrategy(self.strategy).value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyzerConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known}).clamped()


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _clamp_int(value: Any, low: int, high: int) -> int:
    if isinstance(value, float) and math.isinf(value):
        return high if value > 0 else low
    return max(low, min(high, _to_int(value, low)))


def _clamp_float(value: Any, default: Optional[float]) -> Optional[float]:
    """``float(value)``, or ``default`` when that is not a finite number."""
    try:
        value = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return value if math.isfinite(value) else default


def _power_of_two_floor(value: int) -> int:
    return 1 << (int(value).bit_length() - 1)


def _coerce_enum(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Presets and config files
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def load_presets() -> Dict[str, Dict[str, Any]]:
    """Load all analyzer presets from the packaged JSON file."""
    with resources.files("bandscope.core").joinpath("presets.json").open(
        "r", encoding="utf-8"
    ) as f:
        return json.load(f)


def get_preset(name: str) -> AnalyzerConfig | None:
    """
    Get the analyzer config for a named preset.

    Returns None if the preset is unknown.
    """
    data = load_presets().get(name)
    if data is None:
        return None
    return AnalyzerConfig.from_dict(data)


def load_config(path: Union[str, Path]) -> AnalyzerConfig:
    """Read an :class:`AnalyzerConfig` from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return AnalyzerConfig.from_dict(json.load(f))


def save_config(config: AnalyzerConfig, path: Union[str, Path]) -> None:
    """Write an :class:`AnalyzerConfig` to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)

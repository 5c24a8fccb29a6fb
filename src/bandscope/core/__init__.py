"""Core band analysis modules."""

from bandscope.core.analyzer import BandAggregator
from bandscope.core.config import AnalyzerConfig, BandStrategy, FFTWindow
from bandscope.core.polisher import AmplitudeAggregator, DecayBuffer, PeakNormalizer
from bandscope.core.source import ArraySpectrumSource, SignalSpectrumSource, SpectrumSource
from bandscope.core.stream import BandSnapshot, SpectrumAnalyzer

__all__ = [
    "AmplitudeAggregator",
    "AnalyzerConfig",
    "ArraySpectrumSource",
    "BandAggregator",
    "BandSnapshot",
    "BandStrategy",
    "DecayBuffer",
    "FFTWindow",
    "PeakNormalizer",
    "SignalSpectrumSource",
    "SpectrumAnalyzer",
    "SpectrumSource",
]

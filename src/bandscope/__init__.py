"""Spectrum band analysis for audio-reactive visuals."""

from bandscope.core.analyzer import BandAggregator
from bandscope.core.config import AnalyzerConfig, BandStrategy, FFTWindow
from bandscope.core.source import SignalSpectrumSource, SpectrumSource
from bandscope.core.stream import BandSnapshot, SpectrumAnalyzer
from bandscope.io.exporter import ManifestExporter
from bandscope.pipeline import BandPipeline

__version__ = "0.1.0"
__all__ = [
    "AnalyzerConfig",
    "BandAggregator",
    "BandPipeline",
    "BandSnapshot",
    "BandStrategy",
    "FFTWindow",
    "ManifestExporter",
    "SignalSpectrumSource",
    "SpectrumAnalyzer",
    "SpectrumSource",
]

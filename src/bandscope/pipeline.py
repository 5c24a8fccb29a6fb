"""
Offline band analysis of audio files.

Plays a file through the same per-frame analyzer used live: audio is pushed
into a :class:`SignalSpectrumSource` one frame hop at a time and the
analyzer is polled after every hop.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

import librosa
import numpy as np

from bandscope.core.config import AnalyzerConfig
from bandscope.core.source import SignalSpectrumSource, load_audio
from bandscope.core.stream import BandSnapshot, SpectrumAnalyzer
from bandscope.io.exporter import ManifestExporter

logger = logging.getLogger(__name__)


class BandPipeline:
    """
    File to manifest pipeline.

    Args:
        config: Analyzer configuration.
        target_fps: Analysis frames per second.
        precision: Decimal places in the manifest.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        target_fps: int = 60,
        precision: int = 4,
    ):
        self.config = (config or AnalyzerConfig()).clamped()
        self.target_fps = max(1, int(target_fps))
        self.exporter = ManifestExporter(precision=precision)

    def analyze_signal(
        self,
        y: np.ndarray,
        sr: int,
        max_duration: Optional[float] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> list[BandSnapshot]:
        """
        Run the analyzer over an in-memory signal.

        Args:
            y: Mono ``(n,)`` or multi-channel ``(channels, n)`` audio.
            sr: Sample rate in Hz.
            max_duration: Stop after this many seconds.
            progress_callback: Called as ``callback(frame, total_frames)``.

        Returns:
            One snapshot per frame.
        """
        y = np.atleast_2d(np.asarray(y, dtype=np.float64))
        n_samples = y.shape[1]
        if max_duration is not None:
            n_samples = min(n_samples, int(max_duration * sr))

        hop = sr / self.target_fps
        n_frames = int(n_samples // hop)

        source = SignalSpectrumSource(
            sample_rate=sr,
            capacity=max(2 * self.config.sample_size, int(np.ceil(hop))),
            channels=y.shape[0],
        )
        analyzer = SpectrumAnalyzer(self.config, source=source)

        logger.info(
            "Analyzing %.2fs at %d fps (%d frames, %d bands, %s)",
            n_samples / sr, self.target_fps, n_frames,
            self.config.num_bands, self.config.strategy.value,
        )

        snapshots = []
        for frame in range(n_frames):
            # Fractional hops keep frames aligned to wall-clock time
            start = int(round(frame * hop))
            end = int(round((frame + 1) * hop))
            source.push(y[:, start:end])
            snapshots.append(analyzer.update())

            if progress_callback is not None:
                progress_callback(frame + 1, n_frames)

        return snapshots

    def process(
        self,
        audio_path: Union[str, Path],
        max_duration: Optional[float] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> dict[str, Any]:
        """
        Analyze an audio file.

        Returns:
            Dict with ``manifest``, ``snapshots``, ``duration`` and
            ``sample_rate``.
        """
        logger.info("Loading audio: %s", audio_path)
        y, sr = load_audio(audio_path, sr=None, mono=False)
        duration = librosa.get_duration(y=y, sr=sr)
        if max_duration is not None:
            duration = min(duration, max_duration)

        snapshots = self.analyze_signal(
            y, sr, max_duration=max_duration, progress_callback=progress_callback
        )
        manifest = self.exporter.build_manifest(
            snapshots,
            fps=self.target_fps,
            duration=duration,
            config=self.config,
        )

        return {
            "manifest": manifest,
            "snapshots": snapshots,
            "duration": duration,
            "sample_rate": sr,
        }

    def process_to_file(
        self,
        audio_path: Union[str, Path],
        output_path: Union[str, Path],
        max_duration: Optional[float] = None,
    ) -> Path:
        """Analyze an audio file and write the manifest as JSON."""
        result = self.process(audio_path, max_duration=max_duration)
        path = self.exporter.export_json(result["manifest"], output_path)
        logger.info("Wrote %d frames to %s", result["manifest"]["metadata"]["n_frames"], path)
        return path

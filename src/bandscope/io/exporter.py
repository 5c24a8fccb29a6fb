"""
Manifest serialization module.

Exports per-frame band snapshots to JSON (or NumPy) aligned to the analysis
frame rate, for renderers that play back a pre-analyzed track.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Union

import numpy as np

from bandscope.core.config import AnalyzerConfig
from bandscope.core.stream import BandSnapshot


@dataclass
class ManifestMetadata:
    """Metadata header for the band manifest."""

    duration: float
    fps: int
    n_frames: int
    num_bands: int
    sample_size: int
    strategy: str
    schema_version: str = "1.0"


class ManifestExporter:
    """
    Exports band snapshots to manifest format.

    Each frame carries the normalized bands, the held (decayed) bands and
    the two amplitude values.  Raw, unnormalized bands are included only
    when ``include_raw`` is set.
    """

    def __init__(self, precision: int = 4, include_raw: bool = False):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
            include_raw: Also write unnormalized raw/decay bands.
        """
        self.precision = precision
        self.include_raw = include_raw

    def _round(self, value: float) -> float:
        """Round to configured precision."""
        return round(float(value), self.precision)

    def _round_list(self, values: np.ndarray) -> list[float]:
        return [self._round(v) for v in values]

    def _build_frame(
        self,
        index: int,
        snapshot: BandSnapshot,
        fps: int,
    ) -> dict[str, Any]:
        frame: dict[str, Any] = {
            "frame_index": index,
            "time": self._round(index / fps),
            "bands": self._round_list(snapshot.normalized_raw),
            "bands_buffered": self._round_list(snapshot.normalized_decay),
            "amplitude": self._round(snapshot.amplitude),
            "amplitude_buffered": self._round(snapshot.amplitude_buffered),
        }
        if self.include_raw:
            frame["raw_bands"] = self._round_list(snapshot.raw_bands)
            frame["decay_bands"] = self._round_list(snapshot.decay_bands)
        return frame

    def build_manifest(
        self,
        snapshots: Sequence[BandSnapshot],
        fps: int,
        duration: float,
        config: AnalyzerConfig,
    ) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            snapshots: One snapshot per frame, in order.
            fps: Frame rate the snapshots were taken at.
            duration: Audio duration in seconds.
            config: Analyzer configuration used.

        Returns:
            Complete manifest dictionary ready for serialization.
        """
        metadata = ManifestMetadata(
            duration=self._round(duration),
            fps=fps,
            n_frames=len(snapshots),
            num_bands=config.num_bands,
            sample_size=config.sample_size,
            strategy=config.strategy.value,
        )

        return {
            "metadata": {
                "duration": metadata.duration,
                "fps": metadata.fps,
                "n_frames": metadata.n_frames,
                "num_bands": metadata.num_bands,
                "sample_size": metadata.sample_size,
                "strategy": metadata.strategy,
                "schema_version": metadata.schema_version,
            },
            "config": config.to_dict(),
            "frames": [
                self._build_frame(i, snap, fps)
                for i, snap in enumerate(snapshots)
            ],
        }

    def export_json(
        self,
        manifest: dict[str, Any],
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """
        Write a manifest to a JSON file.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        snapshots: Sequence[BandSnapshot],
        fps: int,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export snapshots as a NumPy .npz archive for faster loading.

        Band arrays are stacked to shape ``(n_frames, num_bands)``.
        """
        output_path = Path(output_path)

        np.savez_compressed(
            output_path,
            raw_bands=np.array([s.raw_bands for s in snapshots]),
            decay_bands=np.array([s.decay_bands for s in snapshots]),
            normalized_raw=np.array([s.normalized_raw for s in snapshots]),
            normalized_decay=np.array([s.normalized_decay for s in snapshots]),
            amplitude=np.array([s.amplitude for s in snapshots]),
            amplitude_buffered=np.array([s.amplitude_buffered for s in snapshots]),
            fps=np.array([fps]),
        )

        return output_path

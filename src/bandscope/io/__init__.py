"""Serialization of analysis results."""

from bandscope.io.exporter import ManifestExporter

__all__ = ["ManifestExporter"]

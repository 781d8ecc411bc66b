"""Exporter SPI and implementations."""

from .base import BaseExporter
from .line_exporter import LineFileExporter

__all__ = ["BaseExporter", "LineFileExporter"]

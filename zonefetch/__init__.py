"""Concurrent FTP zone-file retrieval and consolidation."""

__version__ = "0.1.0"

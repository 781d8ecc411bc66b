"""Exception hierarchy separating fatal, per-entry and per-record failures."""

from __future__ import annotations


class ZoneFetchError(Exception):
    """Base exception for all zonefetch errors."""


# --- Fatal: abort the whole run ---

class FatalError(ZoneFetchError):
    """Errors that terminate the run; no partial output is kept."""


class ConfigurationError(FatalError):
    """Invalid or incomplete configuration (e.g. missing host)."""


class ListingError(FatalError):
    """The initial control connection, login or listing failed."""


class OutputError(FatalError):
    """The output destination could not be created or written."""


# --- Per-entry: abandon one entry, keep the pipeline going ---

class EntryError(ZoneFetchError):
    """Base class for failures contained to a single remote entry."""


class SessionError(EntryError):
    """Connection-level failure; the owning worker must reconnect."""


class RetrievalError(EntryError):
    """The server refused or failed to deliver the entry's bytes."""


class DecompressionInitError(EntryError):
    """The compressed stream header is invalid."""


class StreamError(EntryError):
    """The byte stream broke while records were being read."""


__all__ = [
    "ConfigurationError",
    "DecompressionInitError",
    "EntryError",
    "FatalError",
    "ListingError",
    "OutputError",
    "RetrievalError",
    "SessionError",
    "StreamError",
    "ZoneFetchError",
]

"""Fetch the remote directory listing over a short-lived control session."""

from __future__ import annotations

import structlog

from ..errors import EntryError, ListingError
from ..logging_conf import get_logger
from .entries import RemoteEntry, dedupe_by_name
from .transfer import SessionFactory


class ListingFetcher:
    """Open a session, list one directory, close the session."""

    def __init__(
        self,
        session_factory: SessionFactory,
        dedupe: bool = True,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.dedupe = dedupe
        self.logger = logger or get_logger("listing")

    def list_entries(self, remote_path: str) -> list[RemoteEntry]:
        """Return entries in server order; any connect/login/list failure is fatal."""

        try:
            session = self.session_factory()
        except EntryError as exc:
            raise ListingError(f"cannot open listing session: {exc}") from exc
        try:
            entries = session.list(remote_path)
        except EntryError as exc:
            raise ListingError(f"cannot list {remote_path}: {exc}") from exc
        finally:
            session.close()
        if self.dedupe:
            entries = dedupe_by_name(entries)
        self.logger.info("listing_fetched", remote_path=remote_path, entries=len(entries))
        return entries


__all__ = ["ListingFetcher"]

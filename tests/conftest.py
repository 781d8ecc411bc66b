"""Shared fixtures: in-memory transfer sessions, zone payloads and config builders."""

from __future__ import annotations

import gzip
import io
import posixpath
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable

import pytest

from zonefetch.config import ConfigLocator, ConfigRepository, HarvestConfig, PipelineSettings
from zonefetch.engine import RemoteEntry
from zonefetch.errors import RetrievalError, SessionError


def build_zone(*lines: str) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def build_gzip(*lines: str) -> bytes:
    return gzip.compress(build_zone(*lines))


class BreakingStream(io.RawIOBase):
    """Deliver ``data`` in one read, then fail like a dropped data connection."""

    def __init__(self, data: bytes, session: "FakeSession") -> None:
        super().__init__()
        self._data = data
        self._sent = False
        self._session = session

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if not self._sent:
            self._sent = True
            size = len(self._data)
            buffer[:size] = self._data
            return size
        self._session.broken = True
        raise ConnectionResetError("connection reset by peer")


class FakeRemote:
    """Thread-safe in-memory FTP server shared by every session it hands out."""

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        listing: Iterable[RemoteEntry] | None = None,
    ) -> None:
        self.files = dict(files or {})
        self._listing = list(listing) if listing is not None else None
        self.refuse: set[str] = set()
        self.drop_connection: set[str] = set()
        self.break_midstream: set[str] = set()
        self.list_error: Exception | None = None
        self.connect_error: Exception | None = None
        self.sessions: list[FakeSession] = []
        self.retrieved: list[str] = []
        self._lock = Lock()

    def listing(self) -> list[RemoteEntry]:
        if self._listing is not None:
            return list(self._listing)
        return [RemoteEntry(name=name, size=len(data)) for name, data in self.files.items()]

    def factory(self) -> "FakeSession":
        if self.connect_error is not None:
            raise self.connect_error
        session = FakeSession(self)
        with self._lock:
            self.sessions.append(session)
        return session

    def record_retrieve(self, name: str) -> None:
        with self._lock:
            self.retrieved.append(name)


class FakeSession:
    def __init__(self, remote: FakeRemote) -> None:
        self.remote = remote
        self.broken = False
        self.closed = False

    def login(self, username: str, password: str) -> None:
        return None

    def list(self, path: str) -> list[RemoteEntry]:
        if self.remote.list_error is not None:
            raise self.remote.list_error
        return self.remote.listing()

    def retrieve(self, path: str):
        name = posixpath.basename(path)
        self.remote.record_retrieve(name)
        if name in self.remote.drop_connection:
            self.broken = True
            raise SessionError(f"connection dropped while opening {name}")
        if name in self.remote.refuse or name not in self.remote.files:
            raise RetrievalError(f"550 {name}: no such file")
        data = self.remote.files[name]
        if name in self.remote.break_midstream:
            return io.BufferedReader(BreakingStream(data, self))
        return io.BytesIO(data)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_remote() -> Callable[..., FakeRemote]:
    def _builder(files: dict[str, bytes] | None = None, listing: Iterable[RemoteEntry] | None = None) -> FakeRemote:
        return FakeRemote(files, listing)

    return _builder


@pytest.fixture
def harvest_config(tmp_path: Path) -> Callable[..., HarvestConfig]:
    def _builder(**pipeline: Any) -> HarvestConfig:
        base: dict[str, Any] = {"workers": 2, "output_path": tmp_path / "results.txt"}
        base.update(pipeline)
        return HarvestConfig(pipeline=PipelineSettings(**base))

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("ZONEFETCH_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    return ConfigRepository(locator, environ={})


@pytest.fixture
def zone_payload() -> Callable[..., bytes]:
    return build_zone


@pytest.fixture
def gzip_payload() -> Callable[..., bytes]:
    return build_gzip

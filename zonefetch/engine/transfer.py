"""Transfer-client seam: the session protocol and its ftplib implementation."""

from __future__ import annotations

import ftplib
import io
import re
import socket
from typing import BinaryIO, Callable, Iterable, Protocol

from ..config import TransferSettings
from ..errors import RetrievalError, SessionError
from ..logging_conf import get_logger
from .entries import RemoteEntry


class TransferSession(Protocol):
    """Authenticated, stateful connection to the remote file service."""

    def login(self, username: str, password: str) -> None: ...

    def list(self, path: str) -> list[RemoteEntry]: ...

    def retrieve(self, path: str) -> BinaryIO: ...

    def close(self) -> None: ...


SessionFactory = Callable[[], TransferSession]

_DOS_LINE = re.compile(
    r"^(?P<date>\d{2}-\d{2}-\d{2,4})\s+(?P<time>\d{1,2}:\d{2}\s*[AP]M)\s+(?P<size><DIR>|\d+)\s+(?P<name>.+)$",
    re.IGNORECASE,
)


def parse_list_line(line: str) -> RemoteEntry | None:
    """Parse one Unix or DOS style ``LIST`` line; return None for noise lines."""

    text = line.rstrip("\r\n")
    if not text.strip() or text.lower().startswith("total "):
        return None
    dos = _DOS_LINE.match(text)
    if dos:
        raw_size = dos.group("size")
        is_dir = raw_size.upper() == "<DIR>"
        return RemoteEntry(name=dos.group("name"), size=0 if is_dir else int(raw_size), is_directory=is_dir)
    parts = text.split(None, 8)
    if len(parts) < 9:
        return None
    perms, size, name = parts[0], parts[4], parts[8]
    if perms.startswith("l") and " -> " in name:
        name = name.split(" -> ", 1)[0]
    try:
        parsed_size = int(size)
    except ValueError:
        parsed_size = 0
    return RemoteEntry(name=name, size=parsed_size, is_directory=perms.startswith("d"))


def parse_list_lines(lines: Iterable[str]) -> list[RemoteEntry]:
    entries: list[RemoteEntry] = []
    for line in lines:
        entry = parse_list_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


class FtpDataStream(io.RawIOBase):
    """Readable view over an FTP data connection; closing completes the transfer."""

    def __init__(self, session: "FtpSession", sock: socket.socket, path: str) -> None:
        super().__init__()
        self._session = session
        self._sock = sock
        self.path = path

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        try:
            return self._sock.recv_into(buffer)
        except OSError:
            self._session.broken = True
            raise

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._sock.close()
            self._session.finish_transfer(self.path)
        finally:
            super().close()


class FtpSession:
    """``TransferSession`` backed by :mod:`ftplib`."""

    def __init__(self, ftp: ftplib.FTP, host: str) -> None:
        self._ftp = ftp
        self.host = host
        self.broken = False
        self.logger = get_logger("transfer").bind(host=host)

    @classmethod
    def connect(cls, host: str, port: int = 21, timeout: float = 60.0, passive: bool = True) -> "FtpSession":
        ftp = ftplib.FTP()
        try:
            ftp.connect(host, port, timeout=timeout)
        except (OSError, EOFError, ftplib.Error) as exc:
            raise SessionError(f"cannot connect to {host}:{port}: {exc}") from exc
        ftp.set_pasv(passive)
        return cls(ftp, host)

    def login(self, username: str, password: str) -> None:
        try:
            self._ftp.login(username, password)
        except ftplib.error_perm as exc:
            raise SessionError(f"login rejected for {username!r}: {exc}") from exc
        except (OSError, EOFError, ftplib.Error) as exc:
            self.broken = True
            raise SessionError(f"login failed: {exc}") from exc

    def list(self, path: str) -> list[RemoteEntry]:
        try:
            return self._list_mlsd(path)
        except ftplib.error_perm as exc:
            if not str(exc).startswith("50"):
                raise RetrievalError(f"cannot list {path}: {exc}") from exc
            self.logger.debug("mlsd_unsupported", path=path, error=str(exc))
        except (OSError, EOFError) as exc:
            self.broken = True
            raise SessionError(f"listing {path} failed: {exc}") from exc
        return self._list_plain(path)

    def _list_mlsd(self, path: str) -> list[RemoteEntry]:
        entries: list[RemoteEntry] = []
        for name, facts in self._ftp.mlsd(path, facts=["type", "size"]):
            kind = facts.get("type", "file").lower()
            try:
                size = int(facts.get("size", 0))
            except ValueError:
                size = 0
            entries.append(RemoteEntry(name=name, size=size, is_directory=kind in {"dir", "cdir", "pdir"}))
        return entries

    def _list_plain(self, path: str) -> list[RemoteEntry]:
        lines: list[str] = []
        try:
            self._ftp.retrlines(f"LIST {path}", lines.append)
        except ftplib.error_perm as exc:
            raise RetrievalError(f"cannot list {path}: {exc}") from exc
        except (OSError, EOFError, ftplib.Error) as exc:
            self.broken = True
            raise SessionError(f"listing {path} failed: {exc}") from exc
        return parse_list_lines(lines)

    def retrieve(self, path: str) -> BinaryIO:
        try:
            self._ftp.voidcmd("TYPE I")
            sock = self._ftp.transfercmd(f"RETR {path}")
        except (ftplib.error_perm, ftplib.error_reply) as exc:
            raise RetrievalError(f"RETR {path} refused: {exc}") from exc
        except (OSError, EOFError, ftplib.Error) as exc:
            self.broken = True
            raise SessionError(f"RETR {path} failed: {exc}") from exc
        return io.BufferedReader(FtpDataStream(self, sock, path))

    def finish_transfer(self, path: str) -> None:
        """Read the end-of-transfer reply; an aborted read yields a 4xx we tolerate."""

        try:
            self._ftp.voidresp()
        except ftplib.error_temp as exc:
            self.logger.debug("transfer_aborted", path=path, reply=str(exc))
        except (OSError, EOFError, ftplib.Error) as exc:
            self.broken = True
            self.logger.warning("transfer_reply_failed", path=path, error=str(exc))

    def close(self) -> None:
        try:
            self._ftp.quit()
        except (OSError, EOFError, ftplib.Error):
            self._ftp.close()


class FtpSessionFactory:
    """Open and authenticate a new :class:`FtpSession` per call."""

    def __init__(self, settings: TransferSettings) -> None:
        self.settings = settings

    def __call__(self) -> FtpSession:
        settings = self.settings
        session = FtpSession.connect(
            settings.host, settings.port, timeout=settings.timeout, passive=settings.passive
        )
        try:
            session.login(settings.username, settings.password.get_secret_value())
        except SessionError:
            session.close()
            raise
        return session


__all__ = [
    "FtpDataStream",
    "FtpSession",
    "FtpSessionFactory",
    "SessionFactory",
    "TransferSession",
    "parse_list_line",
    "parse_list_lines",
]

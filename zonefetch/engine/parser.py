"""Master-file (zone file) reader yielding records and per-record errors lazily."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Union

import dns.exception
import dns.name
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.tokenizer
import dns.ttl

from .decompress import STREAM_ERRORS


@dataclass(frozen=True, slots=True)
class ZoneRecord:
    """One resource record in presentation form."""

    owner: str
    ttl: int | None
    rdclass: str
    rdtype: str
    rdata: str
    line: int = 0

    def to_text(self) -> str:
        parts = [self.owner]
        if self.ttl is not None:
            parts.append(str(self.ttl))
        parts.extend((self.rdclass, self.rdtype, self.rdata))
        return " ".join(parts)


@dataclass(frozen=True, slots=True)
class RecordParseError:
    """A malformed record; parsing continues with the next logical line."""

    line: int
    message: str
    text: str = ""
    source: str = ""

    def __str__(self) -> str:
        where = f"{self.source}:{self.line}" if self.source else f"line {self.line}"
        return f"{where}: {self.message}"


ParseResult = Union[ZoneRecord, RecordParseError]


class _LineSyntaxError(ValueError):
    pass


@dataclass(slots=True)
class _ParserState:
    origin: dns.name.Name | None
    default_ttl: int | None = None
    last_ttl: int | None = None
    last_owner: dns.name.Name | None = None
    last_class: dns.rdataclass.RdataClass = dns.rdataclass.IN


class _RecordTokenizer(dns.tokenizer.Tokenizer):
    """Tokenizer that remembers the last token and the words of the current record."""

    def __init__(self, f, filename: str | None = None) -> None:
        super().__init__(f, filename)
        self.last: dns.tokenizer.Token | None = None
        self.words: list[str] = []
        self.plain_delimiters = self.delimiters

    def get(self, want_leading: bool = False, want_comment: bool = False) -> dns.tokenizer.Token:
        replayed = self.ungotten_token is not None
        token = super().get(want_leading, want_comment)
        self.last = token
        if not replayed and (token.is_identifier() or token.is_quoted_string()):
            self.words.append(token.value)
        return token

    def start_record(self) -> int:
        self.words = []
        return self.line_number


def _skip_line(tok: _RecordTokenizer) -> bool:
    """Discard the rest of a bad record. Returns False once nothing is left to read."""

    if tok.quoting:
        # The newline that ended the open quote was consumed with the error.
        tok.quoting = False
        tok.delimiters = tok.plain_delimiters
        return True
    last = tok.last
    if last is not None and last.is_eol_or_eof() and tok.ungotten_token is None:
        return not last.is_eof()
    while True:
        try:
            token = tok.get()
        except dns.exception.UnexpectedEnd:
            return False
        except dns.exception.SyntaxError:
            # An unclosed parenthesis swallows the rest of the file.
            if tok.multiline:
                return False
            continue
        if token.is_eol():
            return True
        if token.is_eof():
            return False


class ZoneParser:
    """Parse RFC 1035 master files on top of dnspython's tokenizer and rdata grammar.

    Supports ``$ORIGIN`` and ``$TTL``, blank owners (previous owner), ``@``,
    TTL/class in either order, multi-line parentheses, quoted strings and
    comments. ``$INCLUDE`` and ``$GENERATE`` are reported as record errors.
    """

    def parse(
        self,
        stream: BinaryIO,
        zone_origin: str = "",
        file_origin: str = "",
    ) -> Iterator[ParseResult]:
        """Yield records in file order. ``file_origin`` labels errors with the source file.

        Errors raised by the underlying byte stream propagate to the caller;
        records yielded before the failure are already delivered.
        """

        state = _ParserState(origin=None)
        if zone_origin:
            try:
                state.origin = dns.name.from_text(zone_origin)
            except dns.exception.DNSException as exc:
                yield RecordParseError(0, f"invalid zone origin {zone_origin!r}: {exc}", source=file_origin)
        text = io.TextIOWrapper(stream, encoding="utf-8", errors="replace")  # type: ignore[arg-type]
        tok = _RecordTokenizer(text, file_origin or None)
        while True:
            line = tok.start_record()
            try:
                token = tok.get(want_leading=True)
                if token.is_eof():
                    return
                if token.is_eol():
                    continue
                record = self._handle(token, tok, state, line)
            except (_LineSyntaxError, dns.exception.DNSException, ValueError) as exc:
                if isinstance(exc.__cause__, STREAM_ERRORS):
                    raise exc.__cause__
                yield RecordParseError(
                    line, str(exc) or exc.__class__.__name__, " ".join(tok.words), source=file_origin
                )
                if not _skip_line(tok):
                    return
                continue
            if record is not None:
                yield record

    def parse_text(self, content: str, zone_origin: str = "", file_origin: str = "") -> list[ParseResult]:
        return list(self.parse(io.BytesIO(content.encode("utf-8")), zone_origin, file_origin))

    def _handle(
        self,
        token: dns.tokenizer.Token,
        tok: _RecordTokenizer,
        state: _ParserState,
        line: int,
    ) -> ZoneRecord | None:
        if token.is_whitespace():
            token = tok.get()
            if token.is_eol():
                return None
            if token.is_eof():
                tok.unget(token)
                return None
            if state.last_owner is None:
                raise _LineSyntaxError("record without owner and no previous owner")
            owner = state.last_owner
        elif not token.is_identifier():
            raise _LineSyntaxError("expected an owner name")
        elif token.value.startswith("$"):
            self._handle_directive(token.value, tok, state)
            return None
        else:
            owner = self._owner(token.value, state)
            token = tok.get()

        ttl: int | None = None
        rdclass: dns.rdataclass.RdataClass | None = None
        for _ in range(2):
            if not token.is_identifier():
                break
            if ttl is None and token.value[:1].isdigit():
                ttl = dns.ttl.from_text(token.value)
            elif rdclass is None and self._is_class(token.value):
                rdclass = dns.rdataclass.from_text(token.value)
            else:
                break
            token = tok.get()
        if not token.is_identifier():
            raise _LineSyntaxError("missing record type")
        rdtype = dns.rdatatype.from_text(token.value)
        following = tok.get()
        tok.unget(following)
        if following.is_eol_or_eof():
            raise _LineSyntaxError(f"missing rdata for {dns.rdatatype.to_text(rdtype)}")
        rdclass = rdclass if rdclass is not None else state.last_class
        rdata = dns.rdata.from_text(rdclass, rdtype, tok, origin=state.origin, relativize=False)
        if state.origin is None:
            try:
                rdata.to_wire()
            except dns.name.NeedAbsoluteNameOrOrigin as exc:
                raise _LineSyntaxError("relative name in rdata without an origin") from exc

        if ttl is not None:
            state.last_ttl = ttl
        else:
            ttl = state.default_ttl if state.default_ttl is not None else state.last_ttl
        state.last_owner = owner
        state.last_class = rdclass
        return ZoneRecord(
            owner=owner.to_text(),
            ttl=ttl,
            rdclass=dns.rdataclass.to_text(rdclass),
            rdtype=dns.rdatatype.to_text(rdtype),
            rdata=rdata.to_text(),
            line=line,
        )

    @staticmethod
    def _handle_directive(name: str, tok: _RecordTokenizer, state: _ParserState) -> None:
        directive = name.upper()
        if directive == "$ORIGIN":
            value = tok.get()
            if not value.is_identifier():
                raise _LineSyntaxError("$ORIGIN requires a name")
            state.origin = dns.name.from_text(value.value, state.origin or dns.name.root)
        elif directive == "$TTL":
            value = tok.get()
            if not value.is_identifier():
                raise _LineSyntaxError("$TTL requires a value")
            state.default_ttl = dns.ttl.from_text(value.value)
        elif directive in ("$INCLUDE", "$GENERATE"):
            raise _LineSyntaxError(f"{directive} is not supported")
        else:
            raise _LineSyntaxError(f"unknown directive {name}")
        tok.get_eol()

    @staticmethod
    def _owner(value: str, state: _ParserState) -> dns.name.Name:
        name = dns.name.from_text(value, None)
        if name.is_absolute():
            return name
        if state.origin is None:
            raise _LineSyntaxError(f"relative owner {value!r} without an origin")
        return name.derelativize(state.origin)


    @staticmethod
    def _is_class(token: str) -> bool:
        try:
            dns.rdataclass.from_text(token)
        except dns.rdataclass.UnknownRdataclass:
            return False
        return True


__all__ = ["ParseResult", "RecordParseError", "ZoneParser", "ZoneRecord"]

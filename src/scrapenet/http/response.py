"""Classified responses and their body streams."""

from __future__ import annotations

import logging
import zlib
from collections.abc import Iterator
from enum import Enum
from types import TracebackType
from typing import IO, TYPE_CHECKING, Optional

from charset_normalizer import from_bytes
from requests.structures import CaseInsensitiveDict
from urllib3.exceptions import HTTPError

from ..exceptions import UnsupportedEncodingError

if TYPE_CHECKING:
    from .transport import Connection

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

GZIP_WBITS = 16 + zlib.MAX_WBITS
RAW_DEFLATE_WBITS = -zlib.MAX_WBITS


class ResponseKind(str, Enum):
    """Classification of a terminal response."""

    SUCCESS = "success"
    REDIRECT = "redirect"
    AUTH_CHALLENGE = "auth_challenge"


def charset_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """
    Charset declared in a Content-Type header.

    Returns:
        The ``charset=`` parameter, ``"UTF-8"`` if the header has none, or
        None when there is no Content-Type at all
    """
    if content_type is None:
        return None
    for part in content_type.split(";"):
        part = part.strip()
        if part.lower().startswith("charset="):
            charset = part.split("=", 1)[1].strip().strip("\"'")
            if charset:
                return charset
    return "UTF-8"


class _InflatingReader:
    """Incrementally decompresses a gzip or raw-deflate stream."""

    def __init__(self, raw: IO[bytes], wbits: int) -> None:
        self._raw = raw
        self._decompressor = zlib.decompressobj(wbits)
        self._buffer = b""
        self._eof = False
        # Raw bytes read so far, kept until the first block decodes
        self.consumed = b""

    def prime(self) -> None:
        """Decode the first block so a corrupt stream fails up front."""
        chunk = self._raw.read(CHUNK_SIZE)
        self.consumed = chunk
        if chunk:
            self._buffer = self._decompressor.decompress(chunk)
        else:
            self._buffer = self._decompressor.flush()
            self._eof = True
        self.consumed = b""

    def _fill(self) -> None:
        while not self._buffer and not self._eof:
            chunk = self._raw.read(CHUNK_SIZE)
            if chunk:
                self._buffer = self._decompressor.decompress(chunk)
            else:
                self._buffer = self._decompressor.flush()
                self._eof = True

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            parts = []
            while True:
                self._fill()
                if not self._buffer:
                    break
                parts.append(self._buffer)
                self._buffer = b""
            return b"".join(parts)

        self._fill()
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def close(self) -> None:
        self._raw.close()


class _PrefixedReader:
    """Replays already-consumed bytes before the rest of ``raw``."""

    def __init__(self, prefix: bytes, raw: IO[bytes]) -> None:
        self._prefix = prefix
        self._raw = raw

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            data, self._prefix = self._prefix, b""
            return data + self._raw.read()
        if self._prefix:
            data, self._prefix = self._prefix[:size], self._prefix[size:]
            return data
        return self._raw.read(size)

    def close(self) -> None:
        self._raw.close()


def decode_body(raw: IO[bytes], encoding: Optional[str]):
    """
    Wrap ``raw`` according to its Content-Encoding.

    ``gzip`` is gunzipped, ``deflate`` is raw-inflated (no zlib header), and
    no encoding (or ``identity``) passes through.

    Raises:
        UnsupportedEncodingError: For any other encoding
    """
    if encoding is None:
        return raw
    name = encoding.strip().lower()
    if name in ("", "identity"):
        return raw
    if name in ("gzip", "x-gzip"):
        return _InflatingReader(raw, GZIP_WBITS)
    if name == "deflate":
        return _InflatingReader(raw, RAW_DEFLATE_WBITS)
    raise UnsupportedEncodingError(encoding)


class ResponseStream:
    """
    Read-only view over a response body.

    It has no ``close()``: consumers such as parsers may read
    and copy bytes out, but only the owning :class:`ResponseEnvelope`
    releases the source. An empty stream stands in when there is no body.
    """

    def __init__(self, source: Optional[IO[bytes]] = None) -> None:
        self._source = source
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def readable(self) -> bool:
        return not self._released

    def read(self, size: int = -1) -> bytes:
        if self._source is None or self._released:
            return b""
        if size is None or size < 0:
            return self._source.read()
        return self._source.read(size)

    def readline(self, size: int = -1) -> bytes:
        line = bytearray()
        while size < 0 or len(line) < size:
            byte = self.read(1)
            if not byte:
                break
            line += byte
            if byte == b"\n":
                break
        return bytes(line)

    def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def __iter__(self) -> Iterator[bytes]:
        while True:
            line = self.readline()
            if not line:
                return
            yield line

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._source is not None:
            self._source.close()


class ResponseEnvelope:
    """
    The classified result of one logical request.

    ``kind`` tags the variant. ``location`` is set only for
    :attr:`ResponseKind.REDIRECT` (verbatim, possibly relative) and
    ``challenge`` only for :attr:`ResponseKind.AUTH_CHALLENGE`.

    Closing disconnects the connection first and releases the body second.

    Example:
        with engine.execute(spec) as envelope:
            if envelope.kind is ResponseKind.SUCCESS:
                html = envelope.text()
            elif envelope.kind is ResponseKind.REDIRECT:
                print(envelope.location)
            elif envelope.kind is ResponseKind.AUTH_CHALLENGE:
                print(envelope.challenge)
    """

    def __init__(
        self,
        connection: Connection,
        stream: ResponseStream,
        status: int,
        charset: Optional[str],
        kind: ResponseKind = ResponseKind.SUCCESS,
        location: Optional[str] = None,
        challenge: Optional[str] = None,
    ) -> None:
        self.connection = connection
        self.stream = stream
        self.status = status
        self.charset = charset
        self.kind = kind
        self.location = location
        self.challenge = challenge
        self._closed = False

    @classmethod
    def classify(
        cls,
        connection: Connection,
        stream: ResponseStream,
        status: int,
        charset: Optional[str],
    ) -> ResponseEnvelope:
        """Built-in classification: 3xx redirect, 401 challenge, anything else success."""
        if status // 100 == 3:
            return cls(
                connection, stream, status, charset,
                kind=ResponseKind.REDIRECT,
                location=connection.header("Location"),
            )
        if status == 401:
            return cls(
                connection, stream, status, charset,
                kind=ResponseKind.AUTH_CHALLENGE,
                challenge=connection.header("WWW-Authenticate"),
            )
        return cls(connection, stream, status, charset)

    @property
    def url(self) -> str:
        return self.connection.url

    @property
    def is_ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def headers(self) -> CaseInsensitiveDict:
        return self.connection.response_headers

    def header(self, name: str) -> Optional[str]:
        return self.connection.header(name)

    @property
    def content_length(self) -> int:
        return self.connection.content_length

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self) -> bytes:
        """Read the remaining body."""
        return self.stream.read()

    def text(self) -> str:
        """
        Read the remaining body as text.

        Fallback chain:
        1. Declared charset
        2. charset-normalizer detection
        3. UTF-8 with replacement
        """
        content = self.stream.read()
        if self.charset:
            try:
                return content.decode(self.charset)
            except (UnicodeDecodeError, LookupError):
                logger.debug(f"Failed to decode with declared charset: {self.charset}")

        best_match = from_bytes(content).best()
        if best_match is not None:
            logger.debug(f"Detected encoding: {best_match.encoding}")
            return str(best_match)

        return content.decode("utf-8", errors="replace")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.connection.disconnect()
        self.stream._release()

    def __enter__(self) -> ResponseEnvelope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.url} : {self.status}"


# Failures that can surface while reading or decoding a body
BODY_READ_ERRORS = (OSError, zlib.error, HTTPError)


def open_body_stream(raw: IO[bytes], encoding: Optional[str], salvage: bool = False) -> ResponseStream:
    """
    Open the caller-facing stream for a response body.

    Compressed bodies have their first block decoded immediately. If that
    fails and ``salvage`` is set, the undecoded bytes are served instead.

    Raises:
        UnsupportedEncodingError: For an unknown Content-Encoding
        OSError, zlib.error, urllib3.exceptions.HTTPError: If the body cannot
            be read and ``salvage`` is not set
    """
    reader = decode_body(raw, encoding)
    if not isinstance(reader, _InflatingReader):
        return ResponseStream(reader)
    try:
        reader.prime()
    except BODY_READ_ERRORS as e:
        if not salvage:
            raise
        logger.debug(f"Serving undecoded error body ({encoding}): {e}")
        return ResponseStream(_PrefixedReader(reader.consumed, raw))
    return ResponseStream(reader)

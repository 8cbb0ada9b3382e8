"""Tests for body decoding and response envelopes."""

import gzip
import io
import zlib
from unittest.mock import MagicMock

import pytest

from scrapenet import ResponseEnvelope, ResponseKind, ResponseStream
from scrapenet.exceptions import UnsupportedEncodingError
from scrapenet.http import charset_from_content_type
from scrapenet.http.response import decode_body, open_body_stream


def raw_deflate(data):
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def make_connection(headers=None, url="http://example.com/"):
    headers = headers or {}
    connection = MagicMock()
    connection.url = url
    connection.header.side_effect = headers.get
    return connection


class TestCharset:
    """Tests for Content-Type charset extraction."""

    def test_declared_charset(self):
        """Test an explicit charset parameter."""
        assert charset_from_content_type("text/html; charset=ISO-8859-1") == "ISO-8859-1"
        assert charset_from_content_type('text/html; Charset="utf-8"') == "utf-8"

    def test_no_charset_defaults_to_utf8(self):
        """Test a Content-Type without charset."""
        assert charset_from_content_type("text/html") == "UTF-8"

    def test_no_content_type(self):
        """Test no header at all."""
        assert charset_from_content_type(None) is None


class TestDecodeBody:
    """Tests for Content-Encoding handling."""

    def test_gzip(self):
        """Test gzip bodies are decompressed."""
        stream = open_body_stream(io.BytesIO(gzip.compress(b"hello gzip")), "gzip")
        assert stream.read() == b"hello gzip"

    def test_deflate_is_raw(self):
        """Test deflate bodies are raw-inflated."""
        stream = open_body_stream(io.BytesIO(raw_deflate(b"hello deflate")), "deflate")
        assert stream.read() == b"hello deflate"

    def test_identity(self):
        """Test unencoded bodies pass through."""
        assert open_body_stream(io.BytesIO(b"plain"), None).read() == b"plain"
        assert open_body_stream(io.BytesIO(b"plain"), "identity").read() == b"plain"

    def test_unsupported_encoding(self):
        """Test unknown encodings are rejected."""
        with pytest.raises(UnsupportedEncodingError) as exc_info:
            decode_body(io.BytesIO(b""), "br")
        assert exc_info.value.encoding == "br"

    def test_corrupt_gzip_fails(self):
        """Test a corrupt gzip body fails up front."""
        with pytest.raises(zlib.error):
            open_body_stream(io.BytesIO(b"not gzip at all"), "gzip")

    def test_corrupt_gzip_salvaged(self):
        """Test salvage serves the undecoded bytes instead."""
        stream = open_body_stream(io.BytesIO(b"<h1>Error</h1>"), "gzip", salvage=True)
        assert stream.read() == b"<h1>Error</h1>"

    def test_chunked_reads(self):
        """Test reading a large gzip body in small chunks."""
        payload = b"line\n" * 10000
        stream = open_body_stream(io.BytesIO(gzip.compress(payload)), "gzip")
        assert b"".join(stream.iter_chunks(1000)) == payload


class TestResponseStream:
    """Tests for the caller-facing body stream."""

    def test_no_public_close(self):
        """Test the stream cannot be closed by consumers."""
        assert not hasattr(ResponseStream(io.BytesIO(b"")), "close")

    def test_empty_stream(self):
        """Test the stand-in for a missing body."""
        stream = ResponseStream()
        assert stream.read() == b""
        assert list(stream) == []

    def test_readline_and_iter(self):
        """Test line iteration."""
        stream = ResponseStream(io.BytesIO(b"a\nb\nc"))
        assert list(stream) == [b"a\n", b"b\n", b"c"]

    def test_release(self):
        """Test release closes the source and stops reads."""
        source = io.BytesIO(b"data")
        stream = ResponseStream(source)
        stream._release()
        assert source.closed
        assert stream.released
        assert stream.read() == b""


class TestResponseEnvelope:
    """Tests for classification and envelope behavior."""

    def test_classify_success(self):
        """Test 2xx responses are SUCCESS."""
        envelope = ResponseEnvelope.classify(make_connection(), ResponseStream(), 200, "UTF-8")
        assert envelope.kind is ResponseKind.SUCCESS
        assert envelope.is_ok
        assert envelope.location is None
        assert envelope.challenge is None

    def test_classify_redirect(self):
        """Test 3xx responses carry Location verbatim."""
        connection = make_connection(headers={"Location": "/new"})
        envelope = ResponseEnvelope.classify(connection, ResponseStream(), 302, None)
        assert envelope.kind is ResponseKind.REDIRECT
        assert envelope.location == "/new"

    def test_classify_challenge(self):
        """Test 401 responses carry WWW-Authenticate."""
        connection = make_connection(headers={"WWW-Authenticate": 'Basic realm="x"'})
        envelope = ResponseEnvelope.classify(connection, ResponseStream(), 401, None)
        assert envelope.kind is ResponseKind.AUTH_CHALLENGE
        assert envelope.challenge == 'Basic realm="x"'

    def test_classify_error_is_success_kind(self):
        """Test other statuses are SUCCESS variants that are not ok."""
        envelope = ResponseEnvelope.classify(make_connection(), ResponseStream(), 404, None)
        assert envelope.kind is ResponseKind.SUCCESS
        assert not envelope.is_ok

    def test_close_order(self):
        """Test close disconnects before releasing the body, once."""
        calls = []
        connection = make_connection()
        connection.disconnect.side_effect = lambda: calls.append("disconnect")
        stream = ResponseStream(io.BytesIO(b"x"))
        original_release = stream._release
        stream._release = lambda: (calls.append("release"), original_release())

        envelope = ResponseEnvelope(connection, stream, 200, None)
        envelope.close()
        envelope.close()

        assert calls == ["disconnect", "release"]
        assert envelope.closed

    def test_context_manager(self):
        """Test leaving the context closes the envelope."""
        connection = make_connection()
        with ResponseEnvelope(connection, ResponseStream(io.BytesIO(b"x")), 200, None) as envelope:
            pass
        assert envelope.closed
        connection.disconnect.assert_called_once()

    def test_text_declared_charset(self):
        """Test decoding with the declared charset."""
        body = "café".encode("iso-8859-1")
        envelope = ResponseEnvelope(make_connection(), ResponseStream(io.BytesIO(body)), 200, "ISO-8859-1")
        assert envelope.text() == "café"

    def test_text_without_charset(self):
        """Test decoding falls back to detection."""
        envelope = ResponseEnvelope(make_connection(), ResponseStream(io.BytesIO(b"plain ascii")), 200, None)
        assert envelope.text() == "plain ascii"

    def test_repr(self):
        """Test the readable form."""
        envelope = ResponseEnvelope(make_connection(url="http://example.com/x"), ResponseStream(), 200, None)
        assert repr(envelope) == "http://example.com/x : 200"

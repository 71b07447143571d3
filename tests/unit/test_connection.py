"""Unit tests for the per-connection request/response pipeline."""

import io
import logging
import socket
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from scratch_server.transport.connection import handle_connection, read_request_line
from tests.utils.http import read_until_closed


@pytest.fixture(name="stream_pair")
def fixture_stream_pair():
    """Yield a connected (server, client) socket pair."""
    server_side, client_side = socket.socketpair()
    server_side.settimeout(5)
    client_side.settimeout(5)
    yield server_side, client_side
    server_side.close()
    client_side.close()


def _serve(stream_pair, payload: bytes, static_dir) -> bytes:
    server_side, client_side = stream_pair
    client_side.sendall(payload)
    client_side.shutdown(socket.SHUT_WR)
    handle_connection(server_side, static_dir)
    server_side.close()
    return read_until_closed(client_side)


def test_root_request_serves_index(stream_pair, tmp_path: Path):
    """GET / is answered with index.html and a 200 status."""
    (tmp_path / "index.html").write_bytes(b"hello world\r\n")

    response = _serve(stream_pair, b"GET / HTTP/1.1\r\nHost: x\r\n\r\n", tmp_path)

    assert response == b"HTTP/1.1 200 OK\r\nContent-Length: 13\r\n\r\nhello world\r\n"


def test_unknown_path_serves_not_found_template(stream_pair, tmp_path: Path):
    """Unrouted request lines get the 404 template."""
    (tmp_path / "404.html").write_bytes(b"nope")

    response = _serve(stream_pair, b"GET /ping HTTP/1.1\r\n\r\n", tmp_path)

    assert response == b"HTTP/1.1 404 NOT FOUND\r\nContent-Length: 4\r\n\r\nnope"


def test_missing_template_yields_empty_body(stream_pair, tmp_path: Path):
    """The routed status is kept even when its template is absent."""
    response = _serve(stream_pair, b"VERB / HTTP/1.1\r\n\r\n", tmp_path)

    assert response == b"HTTP/1.1 404 NOT FOUND\r\nContent-Length: 0\r\n\r\n"


def test_request_line_without_terminator_is_routed(stream_pair, tmp_path: Path):
    """A final line cut short by EOF still counts as the request line."""
    (tmp_path / "index.html").write_bytes(b"hi")

    response = _serve(stream_pair, b"GET / HTTP/1.1", tmp_path)

    assert response == b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhi"


def test_bare_newline_is_routed_as_empty_line(stream_pair, tmp_path: Path):
    """An empty first line is a request that simply does not match."""
    response = _serve(stream_pair, b"\r\n", tmp_path)

    assert response.startswith(b"HTTP/1.1 404 NOT FOUND\r\n")


def test_peer_closing_without_data_writes_nothing(stream_pair, tmp_path: Path, caplog):
    """A connection closed before any byte gets no response."""
    caplog.set_level(logging.DEBUG, logger="scratch_server")

    assert _serve(stream_pair, b"", tmp_path) == b""
    events = [getattr(record, "event", None) for record in caplog.records]
    assert "empty_request" in events


def test_non_utf8_request_line_writes_nothing(stream_pair, tmp_path: Path):
    """Undecodable request lines are dropped silently."""
    assert _serve(stream_pair, b"GET /\xff\xfe HTTP/1.1\r\n", tmp_path) == b""


def test_read_failure_is_swallowed(caplog):
    """Errors raised while reading never escape the handler."""
    caplog.set_level(logging.DEBUG, logger="scratch_server")
    stream = MagicMock(spec=socket.socket)
    reader = stream.makefile.return_value.__enter__.return_value
    reader.readline.side_effect = ConnectionResetError("reset")

    handle_connection(stream, "static")

    stream.sendall.assert_not_called()
    events = [getattr(record, "event", None) for record in caplog.records]
    assert "read_failure" in events


def test_write_failure_is_swallowed(tmp_path: Path, caplog):
    """A peer that vanished before the response is written is ignored."""
    caplog.set_level(logging.DEBUG, logger="scratch_server")
    stream = MagicMock(spec=socket.socket)
    reader = stream.makefile.return_value.__enter__.return_value
    reader.readline.return_value = b"GET / HTTP/1.1\r\n"
    stream.sendall.side_effect = BrokenPipeError("gone")

    handle_connection(stream, tmp_path)

    stream.sendall.assert_called_once_with(
        b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n"
    )
    events = [getattr(record, "event", None) for record in caplog.records]
    assert "write_failure" in events


def test_handler_does_not_close_stream(stream_pair, tmp_path: Path):
    """Closing the stream is the caller's job."""
    server_side, client_side = stream_pair
    client_side.sendall(b"GET / HTTP/1.1\r\n")

    handle_connection(server_side, tmp_path)

    assert server_side.fileno() != -1


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (b"GET / HTTP/1.1\r\nHost: a\r\n", "GET / HTTP/1.1"),
        (b"GET / HTTP/1.1\n", "GET / HTTP/1.1"),
        (b"GET / HTTP/1.1", "GET / HTTP/1.1"),
        (b"\r\n", ""),
        (b"", None),
    ],
)
def test_read_request_line_strips_terminator(raw, expected):
    """Only the first line is consumed and its terminator removed."""
    assert read_request_line(io.BytesIO(raw)) == expected


def test_read_request_line_rejects_invalid_utf8():
    """Decoding is strict."""
    with pytest.raises(UnicodeDecodeError):
        read_request_line(io.BytesIO(b"\xc3\x28\r\n"))

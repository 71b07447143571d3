"""Per-connection request/response pipeline."""

import logging
import socket
from pathlib import Path
from typing import BinaryIO, Optional, Union

from scratch_server.bootstrap.config import DEFAULT_STATIC_DIR
from scratch_server.domain.connection_id import ConnectionLoggerAdapter
from scratch_server.domain.response import build_response
from scratch_server.domain.router import Router
from scratch_server.handlers.template_handler import load_template

CONNECTION_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("scratch_server.transport.connection"), {}
)


def _debug(message: str, event: str, **fields) -> None:
    if CONNECTION_LOGGER.logger.isEnabledFor(logging.DEBUG):
        CONNECTION_LOGGER.debug(message, extra={"event": event, **fields})


def read_request_line(reader: BinaryIO) -> Optional[str]:
    """Read and decode the first line, without its terminator.

    Returns None when the peer closed before sending anything. Raises
    UnicodeDecodeError for non UTF-8 input and OSError on read failure.
    """
    raw_line = reader.readline()
    if not raw_line:
        return None
    line = raw_line.decode("utf-8")
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def handle_connection(
    stream: socket.socket, static_dir: Union[str, Path] = DEFAULT_STATIC_DIR
) -> None:
    """Serve a single request on ``stream``.

    Never raises for I/O or decoding problems: on a failed read nothing is
    written, and on a failed write the response is dropped. Closing the
    stream is left to the caller.
    """
    try:
        with stream.makefile("rb") as reader:
            request_line = read_request_line(reader)
    except OSError as error:
        _debug(
            "Failed to read request line",
            "read_failure",
            error_type=type(error).__name__,
        )
        return
    except UnicodeDecodeError:
        _debug("Request line is not valid UTF-8", "non_utf8_request")
        return

    if request_line is None:
        _debug("Peer closed before sending a request", "empty_request")
        return

    status_line, template_name = Router.build().lookup(request_line)
    contents = load_template(static_dir, template_name)
    response = build_response(status_line, contents)

    try:
        stream.sendall(response)
    except OSError as error:
        _debug(
            "Failed to write response",
            "write_failure",
            error_type=type(error).__name__,
        )
        return

    _debug(
        "Response sent",
        "response_sent",
        status=status_line,
        template=template_name,
        bytes_out=len(response),
    )

"""Listening socket creation."""

import socket

from scratch_server.bootstrap.config import ACCEPT_POLL_SECONDS, ServerConfig


def address_family(host: str) -> socket.AddressFamily:
    """IPv6 literals contain a colon; everything else binds over IPv4."""
    return socket.AF_INET6 if ":" in host else socket.AF_INET


def create_server_socket(config: ServerConfig) -> socket.socket:
    """Bind and listen on the configured address.

    The socket polls with a short timeout so the acceptor can notice stop
    requests. Raises OSError when the address cannot be bound.
    """
    server_socket = socket.create_server(
        (config.host, config.port), family=address_family(config.host)
    )
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    return server_socket

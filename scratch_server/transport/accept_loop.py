"""Main connection acceptance loop."""

import logging
import socket
from pathlib import Path
from typing import Optional, Union

from scratch_server.bootstrap.config import ServerConfig
from scratch_server.bootstrap.socket_factory import create_server_socket
from scratch_server.domain.connection_id import (
    ConnectionLoggerAdapter,
    clear_connection_id,
    generate_connection_id,
    set_connection_id,
)
from scratch_server.lifecycle.state import ServerLifecycle
from scratch_server.transport.channel import Job
from scratch_server.transport.connection import handle_connection
from scratch_server.transport.thread_pool import PoolCreationError, ThreadPool

ACCEPT_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("scratch_server.transport.accept"), {}
)


def connection_job(
    client_socket: socket.socket,
    static_dir: Union[str, Path],
    client_address: Optional[tuple] = None,
) -> Job:
    """Wrap an accepted socket in a job that serves and then closes it."""

    def job() -> None:
        set_connection_id(generate_connection_id())
        peer = client_address or ("-", 0)
        ACCEPT_LOGGER.info(
            "Serving connection",
            extra={"event": "connection_serving", "host": peer[0], "port": peer[1]},
        )
        try:
            with client_socket:
                handle_connection(client_socket, static_dir)
                try:
                    client_socket.shutdown(socket.SHUT_WR)
                except OSError:
                    pass
        finally:
            clear_connection_id()

    return job


def accept_connections(
    server_socket: socket.socket,
    pool: ThreadPool,
    config: ServerConfig,
    lifecycle: ServerLifecycle,
) -> None:
    """Hand accepted connections to the pool until a stop is requested."""
    while not lifecycle.should_stop():
        try:
            client_socket, client_address = server_socket.accept()
        except socket.timeout:
            continue
        except OSError as error:
            if lifecycle.should_stop():
                break
            ACCEPT_LOGGER.error(
                "Socket accept failed",
                extra={"event": "accept_error", "error_type": type(error).__name__},
            )
            continue

        if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
            ACCEPT_LOGGER.debug(
                "Client connection accepted",
                extra={
                    "event": "client_accepted",
                    "host": client_address[0],
                    "port": client_address[1],
                },
            )
        pool.execute(
            connection_job(client_socket, config.static_dir, client_address)
        )
        lifecycle.record_connection()


def run_server(config: ServerConfig, lifecycle: ServerLifecycle) -> int:
    """Bind, serve until stopped, and drain the pool. Returns an exit code."""
    try:
        server_socket = create_server_socket(config)
    except OSError as error:
        ACCEPT_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "bind_failed",
                "host": config.host,
                "port": config.port,
                "error_type": type(error).__name__,
            },
        )
        return 1

    try:
        pool = ThreadPool.build(config.workers)
    except PoolCreationError as error:
        server_socket.close()
        ACCEPT_LOGGER.critical(
            str(error),
            extra={"event": "pool_build_failed", "pool_size": config.workers},
        )
        return 1

    host, port = server_socket.getsockname()[:2]
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": host,
            "port": port,
            "request_limit": lifecycle.request_limit,
        },
    )

    with pool:
        with server_socket:
            accept_connections(server_socket, pool, config, lifecycle)
        ACCEPT_LOGGER.info(
            "Waiting for queued connections to complete",
            extra={"event": "shutdown_waiting", "served": lifecycle.served},
        )

    ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})
    return 0

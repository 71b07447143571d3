"""Thread-pool backed HTTP file server."""

import logging
import signal
import sys
from typing import Optional

from scratch_server.bootstrap.config import build_config, parse_cli_args
from scratch_server.bootstrap.logging_setup import configure_logging
from scratch_server.domain.connection_id import ConnectionLoggerAdapter
from scratch_server.lifecycle.state import ServerLifecycle
from scratch_server.transport.accept_loop import run_server

SERVER_LOGGER = ConnectionLoggerAdapter(logging.getLogger("scratch_server.server"), {})


def main(argv: Optional[list[str]] = None) -> int:
    """Start the server and block until it has shut down."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.log_format == "json")

    try:
        config = build_config(args)
    except ValueError as error:
        SERVER_LOGGER.critical(
            str(error), extra={"event": "invalid_bind_addr", "error_type": "ValueError"}
        )
        return 1

    lifecycle = ServerLifecycle(config.request_limit)

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info("Received shutdown signal", extra={"signal": signum})
        lifecycle.request_stop()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting HTTP server",
        extra={
            "host": config.host,
            "port": config.port,
            "pool_size": config.workers,
            "static_dir": config.static_dir,
            "request_limit": config.request_limit,
            "destination": args.log_destination,
            "log_level": args.log_level,
        },
    )
    return run_server(config, lifecycle)


if __name__ == "__main__":
    sys.exit(main())

"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


DEFAULT_BIND_ADDR = _env_str("SCRATCH_SERVER_BIND_ADDR", "127.0.0.1:7878")
DEFAULT_WORKERS = _env_int("SCRATCH_SERVER_WORKERS", 4)
DEFAULT_STATIC_DIR = _env_str("SCRATCH_SERVER_STATIC_DIR", "static")
ACCEPT_POLL_SECONDS = 0.5


@dataclass
class ServerConfig:
    """Everything the acceptor needs to run."""

    host: str
    port: int
    workers: int
    static_dir: str
    request_limit: Optional[int] = None

    @property
    def bind_addr(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_bind_addr(value: str) -> tuple[str, int]:
    """Split a ``host:port`` string into its parts.

    IPv6 hosts may be bracketed, as in ``[::1]:8080``; brackets are removed.
    """
    host, separator, port_text = value.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not separator or not host:
        raise ValueError(f"Bind address must look like host:port, got {value!r}")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ValueError(f"Invalid port in bind address {value!r}") from exc
    if not 0 <= port <= 65535:
        raise ValueError(f"Port out of range in bind address {value!r}")
    return host, port


def parse_request_limit(value: Optional[str]) -> Optional[int]:
    """Return the connection limit, or None to serve indefinitely.

    Unparseable or negative input is ignored rather than rejected.
    """
    if value is None:
        return None
    try:
        limit = int(value)
    except ValueError:
        return None
    if limit < 0:
        return None
    return limit


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments into a ServerConfig.

    Raises ValueError when the bind address is malformed.
    """
    host, port = parse_bind_addr(args.bind_addr)
    return ServerConfig(
        host=host,
        port=port,
        workers=args.workers,
        static_dir=args.static_dir,
        request_limit=parse_request_limit(args.request_limit),
    )


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Minimal thread-pool file server")
    parser.add_argument(
        "bind_addr",
        nargs="?",
        default=DEFAULT_BIND_ADDR,
        help="Address to listen on as host:port",
    )
    parser.add_argument(
        "request_limit",
        nargs="?",
        default=None,
        help="Serve this many connections and exit (default: unlimited)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help="Number of worker threads in the pool",
    )
    parser.add_argument(
        "--static-dir",
        default=DEFAULT_STATIC_DIR,
        help="Directory holding response templates",
    )
    default_log_level = os.getenv("SCRATCH_SERVER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("SCRATCH_SERVER_LOG_DESTINATION", "stdout")
    default_format = os.getenv("SCRATCH_SERVER_LOG_FORMAT", "text").lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_format,
        choices=["json", "text"],
        type=str.lower,
    )
    return parser.parse_intermixed_args(argv)

"""Server lifecycle state management."""

import logging
import threading
from typing import Optional

from scratch_server.domain.connection_id import ConnectionLoggerAdapter

LIFECYCLE_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("scratch_server.lifecycle"), {}
)


class ServerLifecycle:
    """Tracks served connections and whether the acceptor should stop."""

    def __init__(self, request_limit: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._request_limit = request_limit
        self._served = 0
        if request_limit == 0:
            self._stop_event.set()

    @property
    def request_limit(self) -> Optional[int]:
        return self._request_limit

    @property
    def served(self) -> int:
        with self._lock:
            return self._served

    def should_stop(self) -> bool:
        """Check if the acceptor should stop taking new connections."""
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the acceptor to stop; queued connections still get served."""
        if not self._stop_event.is_set():
            LIFECYCLE_LOGGER.info("Stop requested", extra={"event": "stop_requested"})
        self._stop_event.set()

    def record_connection(self) -> int:
        """Count an accepted connection, stopping once the limit is reached."""
        with self._lock:
            self._served += 1
            served = self._served
        if self._request_limit is not None and served >= self._request_limit:
            LIFECYCLE_LOGGER.info(
                "Request limit reached",
                extra={
                    "event": "request_limit_reached",
                    "request_limit": self._request_limit,
                    "served": served,
                },
            )
            self._stop_event.set()
        return served

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a stop is requested or ``timeout`` elapses."""
        return self._stop_event.wait(timeout)

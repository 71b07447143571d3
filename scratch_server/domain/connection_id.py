"""Per-connection logging context using contextvars."""

import contextvars
import logging
import threading
import uuid
from typing import Any, MutableMapping, Optional

LOGGER_PREFIX = "scratch_server."

_connection_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "connection_id", default=None
)


def generate_connection_id() -> str:
    """Generate a short random identifier for an accepted connection."""
    return uuid.uuid4().hex[:12]


def get_connection_id() -> Optional[str]:
    """Return the id of the connection the current thread is serving."""
    return _connection_id_var.get()


def set_connection_id(connection_id: str) -> None:
    """Bind log records emitted by this thread to a connection."""
    _connection_id_var.set(connection_id)


def clear_connection_id() -> None:
    """Forget the connection id once the connection has been served."""
    _connection_id_var.set(None)


class ConnectionLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that tags records with connection id, worker and component."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Add connection_id, worker and component to the extra dict."""
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        else:
            kwargs["extra"] = dict(kwargs["extra"])

        connection_id = get_connection_id()
        kwargs["extra"]["connection_id"] = (
            connection_id if connection_id is not None else "-"
        )
        kwargs["extra"].setdefault("worker", threading.current_thread().name)

        logger_name = self.logger.name
        if logger_name.startswith(LOGGER_PREFIX):
            component = logger_name[len(LOGGER_PREFIX) :]
        else:
            component = logger_name
        kwargs["extra"]["component"] = component

        return msg, kwargs

"""Template loading from the static directory."""

import logging
from pathlib import Path
from typing import Union

from scratch_server.domain.connection_id import ConnectionLoggerAdapter

TEMPLATE_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("scratch_server.handlers.template"), {}
)


def template_path(static_dir: Union[str, Path], template_name: str) -> Path:
    return Path(static_dir) / template_name


def load_template(static_dir: Union[str, Path], template_name: str) -> str:
    """Read a template as UTF-8 text, returning an empty string on failure.

    Line endings are kept as stored on disk.
    """
    path = template_path(static_dir, template_name)
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as error:
        if TEMPLATE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            TEMPLATE_LOGGER.debug(
                "Template unavailable, serving empty body",
                extra={
                    "event": "template_missing",
                    "template": path.as_posix(),
                    "error_type": type(error).__name__,
                },
            )
        return ""

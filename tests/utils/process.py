"""Helpers for launching the server entry point in a subprocess."""

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"

INDEX_BODY = b"hello world\r\n"
NOT_FOUND_BODY = b"nope"


def server_command(
    bind_addr: str | None,
    static_dir: Path,
    extra_args: list[str] | None = None,
) -> list[str]:
    """Build the argv used to launch the server entry point."""

    args = [sys.executable, str(SERVER_ENTRYPOINT)]
    if bind_addr is not None:
        args.append(bind_addr)
    args.extend(["--static-dir", str(static_dir)])
    if extra_args:
        args.extend(extra_args)
    return args


def write_templates(static_dir: Path) -> Path:
    """Populate a static directory with the fixture templates."""

    static_dir.mkdir(parents=True, exist_ok=True)
    (static_dir / "index.html").write_bytes(INDEX_BODY)
    (static_dir / "404.html").write_bytes(NOT_FOUND_BODY)
    return static_dir

"""Logging for the ``postgres`` wrapper.

Records under the ``pgbox`` logger go to stderr as ``[tag] message``, where the
tag is the logger name below ``pgbox`` (``pgbox.operations`` -> ``operations``).
The wrapper shares its terminal with the child process, so it stays at WARNING
unless ``--verbose`` asks for the DEBUG trace of every container command.
"""

from __future__ import annotations

import logging
import sys
import threading

ROOT = "pgbox"
_FORMAT = "[%(tag)s] %(message)s"

_lock = threading.Lock()
_handler: logging.Handler | None = None


class _TagFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.tag = record.name.removeprefix(f"{ROOT}.")
        return True


def _stderr_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(_TagFilter())
    handler.setFormatter(logging.Formatter(_FORMAT))
    return handler


def setup_logging(verbose: bool = False) -> None:
    """Route ``pgbox`` records to stderr; *verbose* switches to DEBUG.

    The handler is attached once. A later ``verbose=True`` still takes effect
    after modules have triggered the quiet setup through :func:`get_logger`.
    """
    global _handler
    root = logging.getLogger(ROOT)
    with _lock:
        if _handler is None:
            _handler = _stderr_handler()
            root.addHandler(_handler)
            root.setLevel(logging.WARNING)
            root.propagate = False
        if verbose:
            root.setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    setup_logging()
    return logging.getLogger(f"{ROOT}.{name}")

# -*- coding: utf-8 -*-
"""
cartpy.logging
==============

Opt-in loguru output for cartpy.

The package disables its own loguru namespace on import, so training is
silent unless :func:`enable_logging` is called.  Each call adds a filtered
stderr handler and returns a :class:`LoggingHandle` that removes it again,
either explicitly through ``disable()`` or as a context manager::

    with enable_logging(level="DEBUG"):
        tree.train(dataset)
"""
from __future__ import annotations

import contextlib
import sys
import threading
from typing import Literal

from loguru import logger

PACKAGE_NAME = __name__.split(".")[0]

# handler 0 is loguru's default stderr sink; enable_logging adds its own
with contextlib.suppress(ValueError):
    logger.remove(0)

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["short", "full"]

_FORMATS = {
    "short": (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{function}</cyan> - "
        "<level>{message}</level> {extra}"
    ),
    "full": (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level> {extra}"
    ),
}


class LoggingHandle:
    """Handle owning one loguru handler added by :func:`enable_logging`.

    When the last active handle is disabled the ``cartpy`` namespace is
    disabled again.
    """

    _active_ids: set[int] = set()
    _lock = threading.Lock()

    def __init__(self, handler_id: int):
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disable()

    @classmethod
    def active_count(cls) -> int:
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(*, level: LogLevel = "INFO", log_format: LogFormat = "short",
                   sink=None) -> LoggingHandle:
    """
    Route cartpy log records to ``sink`` (``sys.stderr`` by default).

    Parameters
    ----------
    level : str, default="INFO"
        Minimum level.  ``"INFO"`` reports the start and end of each
        training run; ``"DEBUG"`` additionally reports every split and
        termination decision made while growing the tree.
    log_format : {"short", "full"}, default="short"
        ``"full"`` adds module and line number to each record.
    sink : file-like or callable, optional
        Any loguru sink.  Useful for capturing records in tests.

    Returns
    -------
    LoggingHandle
        Handle that removes the handler on ``disable()`` or context exit.
    """
    if log_format not in _FORMATS:
        raise ValueError(f"log_format must be one of {sorted(_FORMATS)}, {log_format!r} given.")
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(
        sink if sink is not None else sys.stderr,
        level=level,
        filter=_is_cartpy_record,
        format=_FORMATS[log_format],
    )
    return LoggingHandle(handler_id)


def _is_cartpy_record(record) -> bool:
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)

"""
Central logging configuration and debug decorator.

One package logger with a console handler (INFO) and a debug log file (DEBUG),
plus a decorator that traces entry, duration and failures of pipeline stages.
"""

import functools
import logging
import reprlib
import traceback
from pathlib import Path
from time import time
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

LOG_FILE = Path(__file__).resolve().parent.parent / "attribution_debug.log"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(module)s]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger = logging.getLogger("attribution_engine")
_logger.setLevel(logging.DEBUG)

# Prevent duplicate handlers on re-import (Streamlit reruns the script)
if not _logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    _logger.addHandler(console_handler)

    file_handler = logging.FileHandler(LOG_FILE, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    _logger.addHandler(file_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Optional module name. If None, returns the package logger.

    Returns:
        Logger that propagates to the package handlers.
    """
    if name:
        return logging.getLogger(f"attribution_engine.{name}")
    return _logger


def debug_watcher(func: F) -> F:
    """
    Decorator that logs function entry, execution time, and exceptions.

    The traceback goes to the debug file only; the exception is re-raised.
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        func_name = func.__name__
        start_time = time()

        args_str = ", ".join([reprlib.repr(arg)[:100] for arg in args[:3]])
        kwargs_str = ", ".join([f"{k}={reprlib.repr(v)[:50]}" for k, v in list(kwargs.items())[:3]])
        params_str = ", ".join(filter(None, [args_str, kwargs_str]))
        logger.debug(f"Starting {func_name}... ({params_str})")

        try:
            result = func(*args, **kwargs)
            elapsed = time() - start_time
            logger.debug(f"Completed {func_name} in {elapsed:.3f} seconds.")
            return result

        except Exception as e:
            elapsed = time() - start_time
            logger.error(
                f"Exception in {func_name} after {elapsed:.3f} seconds: {type(e).__name__}: {str(e)}"
            )
            logger.debug(f"Full traceback for {func_name}:\n{traceback.format_exc()}")
            raise

    return wrapper  # type: ignore[return-value]

"""Two-valued results for operations whose failures are data, not exceptions."""

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class Ok:
    value: Any

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True


def capture(func: Callable, *args, errors=(Exception,), **kwargs):
    """Call ``func`` and wrap the outcome; only ``errors`` are converted to Err."""
    try:
        return Ok(func(*args, **kwargs))
    except errors as e:
        return Err(e)


"""
Pipeline utilities.

Common helpers shared by the ingestion stages.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterable, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@contextmanager
def timed_operation(
    operation_name: str,
    verbose: bool = True,
    log_level: int = logging.INFO,
):
    """
    Context manager to measure and log execution time of an operation.

    Args:
        operation_name: Name of the operation (for logging)
        verbose: If True, log the timing information
        log_level: Logging level to use (default: INFO)

    Usage:
        with timed_operation("OCR of valuation report"):
            outcome = engine.convert(data)
    """
    start_time = time.perf_counter()

    if verbose:
        logger.log(log_level, f"Starting: {operation_name}")

    try:
        yield
    finally:
        elapsed = time.perf_counter() - start_time

        if verbose:
            logger.log(log_level, f"Completed: {operation_name} ({format_duration(elapsed)})")


def format_duration(seconds: float) -> str:
    """Format seconds into human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    else:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.1f}s"


def build_cookie_header(
    cookies: Union[Mapping[str, str], Iterable[Mapping[str, str]]],
) -> str:
    """
    Build a ``Cookie`` header value from browser cookies.

    Accepts either a ``{name: value}`` mapping or a list of cookie dicts with
    ``name`` and ``value`` keys (the shape browser automation tools return).
    """
    if isinstance(cookies, Mapping):
        pairs = cookies.items()
    else:
        pairs = ((c["name"], c["value"]) for c in cookies)
    return "; ".join(f"{name}={value}" for name, value in pairs)


def stripped_length(text: Optional[str]) -> int:
    """Number of non-whitespace characters in a text."""
    if not text:
        return 0
    return len("".join(text.split()))

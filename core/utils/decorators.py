"""
Utility decorators and context managers.
"""

import time
from contextlib import contextmanager
from typing import Dict, Iterator


@contextmanager
def timer() -> Iterator[Dict[str, int]]:
    """
    Measure wall time of a block in milliseconds.

    Example:
        >>> with timer() as t:
        ...     do_work()
        >>> t["ms"]  # read after the block

    The value is filled in when the block exits, even on error.
    """
    result = {"ms": 0}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["ms"] = int((time.perf_counter() - start) * 1000)

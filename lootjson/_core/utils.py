import json
import time
from typing import Any, Optional


class Timer:
    """
    A timer class to record execution time
    and human-readable timestamps using the time module.

    Usage:
        with Timer() as timer:
            parser.feed(chunks)
        print(timer.elapsed_time)       # e.g., 1.234
        print(timer.start_timestamp)    # e.g., '2025-05-13 18:42:01'
    """

    def __init__(self):
        self._elapsed_time: Optional[float] = None
        self._start_time: Optional[float] = None
        self.start_timestamp: Optional[str] = None
        self.end_timestamp: Optional[str] = None
        self.start()

    @property
    def elapsed_time(self) -> Optional[float]:
        """Return the last recorded elapsed time, rounded to milliseconds."""
        return round(self._elapsed_time, 3) if self._elapsed_time is not None else None

    @staticmethod
    def current_timestamp() -> str:
        """Return the current time as a human-readable string."""
        return time.strftime('%Y-%m-%d %H:%M:%S', time.gmtime())

    def start(self) -> None:
        """Start or restart the timer."""
        self._start_time = time.perf_counter()
        self.start_timestamp = self.current_timestamp()

    def stop(self) -> None:
        """Stop the timer and store the elapsed time and human-readable end timestamp."""
        now = time.perf_counter()
        if self._start_time is not None:
            self._elapsed_time = now - self._start_time
        self.end_timestamp = self.current_timestamp()

    def __enter__(self) -> 'Timer':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
        return None


def line_and_column(text: str, position: int):
    """
    Translate an absolute character offset into 1-based (line, column).

    Args:
        text: The text the offset points into.
        position: 0-based character offset.

    Returns:
        Tuple of (line, column).
    """
    line = text.count('\n', 0, position) + 1
    last_newline = text.rfind('\n', 0, position)
    return line, position - last_newline


def _reject_constant(name: str) -> Any:
    raise ValueError(f'Non-standard JSON constant: {name}')


def strict_loads(text: str) -> Any:
    """
    `json.loads` that rejects `NaN`, `Infinity` and `-Infinity`.

    Raises:
        ValueError: On any malformed input (json.JSONDecodeError included).
    """
    return json.loads(text, parse_constant=_reject_constant)

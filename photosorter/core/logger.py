"""Operation log for Photo Sorter.

Export and revert can record every file operation in
``.photo-sorter/operations.log``. The log lives in the project directory,
so revert removes it together with the project.
"""

import os
import time
from typing import Optional, TextIO, Union

OPERATIONS_LOG_FILENAME = "operations.log"


class BufferedLogger:
    """Buffered file logger with context manager support.

    Usage:
        with BufferedLogger("/photos/wedding/.photo-sorter") as log:
            log.log("MOVE img001.jpg -> Yes/img001.jpg")
        # File is automatically closed
    """

    def __init__(self, output_dir: str, filename: str = OPERATIONS_LOG_FILENAME):
        """Initialize logger.

        Args:
            output_dir: Directory to write log file.
            filename: Name of log file (default: operations.log).
        """
        self.output_dir = output_dir
        self.filename = filename
        self.filepath = os.path.join(output_dir, filename)
        self._handle: Optional[TextIO] = None

    def _open(self) -> None:
        """Open the log file for appending (lazy initialization)."""
        if self._handle is None:
            os.makedirs(self.output_dir, exist_ok=True)
            self._handle = open(self.filepath, "a", encoding="utf-8")

    def log(self, message: str) -> None:
        """Write a timestamped message to the log."""
        self._open()
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        self._handle.write(f"{timestamp} - {message}\n")

    def flush(self) -> None:
        """Flush the log buffer to disk."""
        if self._handle:
            self._handle.flush()

    def close(self) -> None:
        """Close the log file."""
        if self._handle:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "BufferedLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        """Check if logger is open."""
        return self._handle is not None


class NullLogger:
    """A logger that does nothing - used when operation logging is off."""

    def log(self, message: str) -> None:
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "NullLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    @property
    def is_open(self) -> bool:
        return True


OperationLogger = Union[BufferedLogger, NullLogger]


def create_logger(output_dir: str, enabled: bool = True) -> OperationLogger:
    """Create an operation logger.

    Args:
        output_dir: Directory for the log file.
        enabled: If False, returns a NullLogger that does nothing.
    """
    if enabled:
        return BufferedLogger(output_dir)
    return NullLogger()

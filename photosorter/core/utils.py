"""Utility functions for file and path operations."""

import errno
import os
import re
import tempfile
from datetime import datetime, timezone
from typing import AbstractSet, Any, List, Optional, Union

# Use orjson for faster JSON encoding/decoding if available
try:
    import orjson
    _USE_ORJSON = True
except ImportError:
    import json
    _USE_ORJSON = False

_DIGITS = re.compile(r"(\d+)")


def dump_json(data: Any) -> bytes:
    """Serialize to indented UTF-8 JSON bytes."""
    if _USE_ORJSON:
        return orjson.dumps(data, option=orjson.OPT_INDENT_2)
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def read_json(path: str) -> Any:
    """Read and parse a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not valid JSON (both orjson and
            json decode errors subclass ValueError).
    """
    with open(path, "rb") as f:
        raw = f.read()
    if _USE_ORJSON:
        return orjson.loads(raw)
    return json.loads(raw.decode("utf-8"))


def write_json_atomic(path: str, data: Any, temp_prefix: str = ".tmp_") -> None:
    """Write JSON to ``path`` so readers never see a partial file.

    Writes to a temporary file in the same directory, then atomically
    replaces the target via os.replace(). The rename is the only step that
    makes new content visible.

    Raises:
        OSError: If the temp file cannot be written or renamed.
    """
    directory = os.path.dirname(os.path.abspath(path))
    payload = dump_json(data)

    fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp", prefix=temp_prefix)
    try:
        with open(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up temp file on any failure
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def exists(path: Optional[str]) -> bool:
    """Check if a path exists.

    Args:
        path: Path to check, or None.

    Returns:
        True if path exists, False if path is None or doesn't exist.
    """
    if path:
        return os.path.exists(path)
    return False


def get_unique_path(path: str, reserved: Optional[AbstractSet[str]] = None) -> str:
    """Get a collision-free path by appending _n before the extension.

    Does not touch the filesystem beyond existence checks, so it is safe
    to use while planning. Paths in ``reserved`` count as taken even if
    nothing exists there yet.

    Args:
        path: Desired path.
        reserved: os.path.normcase()'d paths already claimed by earlier
            planned operations.

    Returns:
        Original path if free, otherwise the first free path with _1, _2, ...

    Examples:
        >>> get_unique_path("/export/Yes/img001.jpg")  # free
        '/export/Yes/img001.jpg'
        >>> get_unique_path("/export/Yes/img001.jpg")  # taken
        '/export/Yes/img001_1.jpg'
    """
    reserved = reserved or frozenset()

    def taken(candidate: str) -> bool:
        return os.path.normcase(candidate) in reserved or os.path.lexists(candidate)

    if not taken(path):
        return path

    base, ext = os.path.splitext(path)
    n = 1
    while taken(f"{base}_{n}{ext}"):
        n += 1
    return f"{base}_{n}{ext}"


def checkout_dir(path: str) -> str:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path.

    Returns:
        The directory path.

    Raises:
        ValueError: If path exists as a file (not a directory).
    """
    if os.path.isfile(path):
        raise ValueError(f"Cannot create directory: {path} exists as a file")
    os.makedirs(path, exist_ok=True)
    return path


def normalize_path(path: str) -> str:
    """Normalize a user-supplied path.

    Handles trailing slashes, mixed separators, "~" and surrounding
    whitespace, and makes the result absolute.
    """
    return os.path.abspath(os.path.normpath(os.path.expanduser(path.strip())))


def natural_sort_key(name: str) -> List[Union[str, int]]:
    """Sort key that orders digit runs numerically and ignores case.

    Example:
        >>> sorted(["IMG10.jpg", "img2.jpg", "IMG1.jpg"], key=natural_sort_key)
        ['IMG1.jpg', 'img2.jpg', 'IMG10.jpg']
    """
    # re.split with a capture group alternates text/digits starting with
    # text, so keys compare str-to-str and int-to-int position by position
    return [int(part) if part.isdigit() else part.casefold() for part in _DIGITS.split(name)]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compact_timestamp(moment: Optional[datetime] = None) -> str:
    """14-digit UTC timestamp (YYYYMMDDHHMMSS) used in backup file names."""
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y%m%d%H%M%S")


def is_cross_device_error(error: OSError) -> bool:
    """True if an OSError means source and destination are on different devices."""
    # Windows reports ERROR_NOT_SAME_DEVICE (17) through winerror
    return error.errno == errno.EXDEV or getattr(error, "winerror", None) == 17

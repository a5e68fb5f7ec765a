"""Tag normalization and folder-name sanitization."""

import re
from typing import Any, Iterable

# Characters that are illegal in a path component on common filesystems,
# plus ASCII control characters
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")
_RESERVED_NAMES = re.compile(r"^(con|prn|aux|nul|com[1-9]|lpt[1-9])(\..*)?$", re.IGNORECASE)

MAX_FOLDER_NAME_LENGTH = 100
EMPTY_FOLDER_NAME = "tag"


def normalize_tag(raw: Any) -> str:
    """Normalize a user-typed tag.

    Trims the ends and collapses internal whitespace runs to one space.
    Casing is kept as typed.

    Args:
        raw: Tag as entered. Non-string input normalizes to "".

    Returns:
        Normalized tag; "" means "no tag" and must be skipped by the caller.

    Example:
        >>> normalize_tag("  Best   Man ")
        'Best Man'
    """
    if not isinstance(raw, str):
        return ""
    return _WHITESPACE.sub(" ", raw.strip())


def tags_equal(a: str, b: str) -> bool:
    """Case-insensitive tag comparison."""
    return str(a).casefold() == str(b).casefold()


def contains_tag(tags: Iterable[str], candidate: str) -> bool:
    """Check whether any tag in ``tags`` equals ``candidate`` ignoring case."""
    return any(tags_equal(t, candidate) for t in tags or ())


def sanitize_folder_name(tag: str) -> str:
    """Turn a tag into a name safe to use as a directory.

    Illegal characters become "_", whitespace runs collapse, trailing
    dots and spaces are stripped, and Windows device names (CON, LPT1, ...)
    get a "_" prefix. An empty result becomes "tag". The result is at
    most 100 characters.

    Example:
        >>> sanitize_folder_name('Bride & Groom: "First Look"')
        'Bride & Groom_ _First Look_'
        >>> sanitize_folder_name("aux")
        '_aux'
    """
    name = _ILLEGAL_CHARS.sub("_", tag if isinstance(tag, str) else "")
    name = _WHITESPACE.sub(" ", name).strip().rstrip(". ")
    if _RESERVED_NAMES.match(name):
        name = "_" + name
    name = name[:MAX_FOLDER_NAME_LENGTH].rstrip(". ")
    return name or EMPTY_FOLDER_NAME

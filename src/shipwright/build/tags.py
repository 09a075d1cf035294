"""
Container tag name sanitizing.

Registry tags may contain letters, digits, underscores, periods and dashes,
may not start with a period or a dash, and are at most 128 characters long.
"""

import re
from typing import Iterable, List, Optional

MAX_TAG_LENGTH = 128

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")
_INVALID_LEADING = re.compile(r"^[.\-]")


def sanitize_tag(tag: Optional[str]) -> str:
    """
    Turn an arbitrary string into a valid container tag.

    Args:
        tag: Raw tag, branch name or spec output (``None`` is treated as empty)

    Returns:
        Sanitized tag, possibly empty
    """
    value = _INVALID_CHARS.sub("_", tag or "")
    value = _INVALID_LEADING.sub("_", value)
    # drop the first "/" if one survived
    value = value.replace("/", "", 1)
    return value[:MAX_TAG_LENGTH]


def sanitize_tags(tags: Optional[Iterable[Optional[str]]]) -> List[str]:
    """Sanitize each tag, preserving order and dropping empty entries."""
    result: List[str] = []
    for tag in tags or []:
        if not tag:
            continue
        cleaned = sanitize_tag(tag)
        if cleaned:
            result.append(cleaned)
    return result

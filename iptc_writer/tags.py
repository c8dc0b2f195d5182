"""
Keyword list normalization.
"""

import re
from typing import Any, List

TAG_SEPARATOR = ", "
DEFAULT_MAX_TAGS = 5

_SPLIT_PATTERN = re.compile(r"[\n,]")


def split_tags(value: str) -> List[str]:
    """Split a delimited tag string on commas and newlines, dropping blanks."""
    return [tag.strip() for tag in _SPLIT_PATTERN.split(value or "") if tag.strip()]


def normalize_tags(raw_tags: Any, max_tags: int = DEFAULT_MAX_TAGS) -> List[str]:
    """
    Turn AI-supplied tags into a clean keyword list.

    Args:
        raw_tags: Either a list of strings or one delimited string
        max_tags: Maximum number of tags to keep

    Returns:
        Trimmed, non-empty tags, at most `max_tags` of them
    """
    if isinstance(raw_tags, (list, tuple)):
        tags = [tag.strip() for tag in raw_tags if isinstance(tag, str) and tag.strip()]
    elif isinstance(raw_tags, str):
        tags = split_tags(raw_tags)
    else:
        tags = []

    return tags[:max_tags]


def join_tags(tags: List[str]) -> str:
    return TAG_SEPARATOR.join(tags)

"""
Utility functions for file names, formats and timestamps.
"""

import mimetypes
import os
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote

from .logging_setup import get_logger

logger = get_logger(__name__)

SUPPORTED_MIME_TYPES = frozenset([
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/x-webp",
])

EXTENSION_MIME_MAP = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}

_DISPOSITION_FILENAME_STAR = re.compile(r"filename\*\s*=\s*(?:[\w-]+'[\w-]*')?([^;]+)", re.IGNORECASE)
_DISPOSITION_FILENAME = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


def get_extension(name: str) -> str:
    """Return the lower-cased extension without the dot, or an empty string."""
    dot_index = (name or "").rfind(".")
    if dot_index == -1 or dot_index == len(name) - 1:
        return ""
    return name[dot_index + 1:].lower()


def is_supported_file(name: str, mime_type: Optional[str] = None) -> bool:
    """
    Check whether a file is a JPEG, PNG or WebP image.

    The declared MIME type wins when it is recognised; otherwise the
    extension decides.

    Args:
        name: Declared file name
        mime_type: Declared media type, if any

    Returns:
        True if the file can be processed
    """
    if mime_type and mime_type.lower() in SUPPORTED_MIME_TYPES:
        return True
    return get_extension(name) in EXTENSION_MIME_MAP


def resolve_mime_type(name: str, mime_type: Optional[str] = None) -> str:
    """Return the MIME type sent with uploads for this file."""
    if mime_type and mime_type.lower() in SUPPORTED_MIME_TYPES:
        return mime_type.lower()
    return EXTENSION_MIME_MAP.get(get_extension(name), "application/octet-stream")


def guess_mime_type(path: str) -> Optional[str]:
    """Guess a MIME type from a path on disk."""
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type is None and get_extension(path) == "webp":
        # Older mimetypes tables lack webp
        return "image/webp"
    return mime_type


def get_download_name(name: str, suffix: str = "-iptc.jpg") -> str:
    """
    Build the file name used when saving a written artifact.

    Args:
        name: Original file name
        suffix: Suffix appended to the base name

    Returns:
        Base name without extension plus the suffix
    """
    base = re.sub(r"\.[^/.]+$", "", name or "")
    return f"{base or 'image'}{suffix}"


def sanitize_filename(name: str) -> str:
    """Strip directory components and characters that are unsafe on disk."""
    name = os.path.basename((name or "").replace("\\", "/"))
    name = re.sub(r'[\x00-\x1f<>:"|?*]', "_", name).strip()
    if name in ("", ".", ".."):
        return "image"
    return name


def parse_content_disposition(header: Optional[str]) -> Optional[str]:
    """
    Extract the suggested file name from a Content-Disposition header.

    Args:
        header: Raw header value

    Returns:
        File name if present, None otherwise
    """
    if not header:
        return None

    match = _DISPOSITION_FILENAME_STAR.search(header)
    if match:
        return unquote(match.group(1).strip().strip('"')) or None

    match = _DISPOSITION_FILENAME.search(header)
    if match:
        return match.group(1).strip() or None

    return None


def archive_timestamp(now: Optional[datetime] = None) -> str:
    """
    Return an ISO-8601 UTC timestamp safe for use in file names.

    Args:
        now: Moment to format (defaults to the current time)

    Returns:
        Timestamp with ':' and '.' replaced by '-'
    """
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", iso)


def get_archive_name(prefix: str = "iptc-batch", now: Optional[datetime] = None) -> str:
    """Return the name of a batch archive."""
    return f"{prefix}-{archive_timestamp(now)}.zip"


def unique_member_name(name: str, taken: set) -> str:
    """
    Return a name not contained in `taken`, adding a ' (n)' counter before
    the extension when needed.
    """
    if name not in taken:
        return name

    base, ext = os.path.splitext(name)
    counter = 2
    while f"{base} ({counter}){ext}" in taken:
        counter += 1
    candidate = f"{base} ({counter}){ext}"
    logger.debug(f"Renamed duplicate name {name} to {candidate}")
    return candidate

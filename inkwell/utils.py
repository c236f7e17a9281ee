"""Utility functions for Inkwell.

Small string and filesystem helpers used throughout the codebase.

Key functions:
    slugify: Convert titles and filenames to URL slugs.
    find_date_in_name: Find a YYYY-MM-DD date inside a filename.
    is_markdown: Check if a path is a Markdown file.
    content_hash: Short content digest used for asset fingerprints.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date
from pathlib import Path, PurePath

DATE_IN_NAME_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-")


def slugify(name: str) -> str:
    """Convert a title or filename stem to a slug, dropping any date prefix.

    Args:
        name: Title or filename stem.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("2024-01-02-Hello, World!")
        'hello-world'
    """
    cleaned = DATE_PREFIX_RE.sub("", name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "untitled"


def find_date_in_name(name: str) -> str | None:
    """Return the first valid YYYY-MM-DD date embedded in a filename.

    Args:
        name: Filename or stem.

    Returns:
        The date as an ISO string, or None when no valid date is present.

    Examples:
        >>> find_date_in_name("2024-01-15-hello-world")
        '2024-01-15'
        >>> find_date_in_name("2024-13-40-nope") is None
        True
    """
    match = DATE_IN_NAME_RE.search(name)
    if not match:
        return None
    try:
        found = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None
    return found.isoformat()


def is_markdown(path: PurePath) -> bool:
    """Check if a path is a Markdown file (case-insensitive ``.md``)."""
    return path.suffix.lower() == ".md"


def is_under(path: PurePath, root: str) -> bool:
    """Check whether a relative path lives under the named top-level folder."""
    return bool(path.parts) and path.parts[0] == root


def content_hash(data: bytes, length: int = 8) -> str:
    """Return a short hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()[:length]


def write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)

"""Utility functions for Sitewright.

This module contains small helpers used throughout the Sitewright codebase:
string processing for file names, date handling, and filesystem operations that
must not leave half-written files behind.

Key functions:
    dash_filename: Turn a post title into a dashed file name.
    title_case: Capitalize a post title.
    strip_source_suffixes: Drop all extensions from a file name.
    atomic_write_text: Replace a file via a temporary sibling.
    clean_empty_dir: Remove a directory tree that holds no files.
"""

from __future__ import annotations

import os
import re
import tempfile
from datetime import date, datetime
from pathlib import Path

from .errors import FilesystemError

DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-")
# mkstemp creates files readable by the owner only
NEW_FILE_MODE = 0o644


def title_case(title: str) -> str:
    """Capitalize each word of a title, keeping short connecting words lowercase."""
    small = {"a", "an", "and", "as", "at", "but", "by", "for", "in", "of", "on", "or", "the", "to"}
    words = title.split()
    result = []
    for index, word in enumerate(words):
        if index and word.lower() in small:
            result.append(word.lower())
        elif word.isupper():
            result.append(word)
        else:
            result.append(word[:1].upper() + word[1:])
    return " ".join(result)


def dash_filename(title: str) -> str:
    """Turn a title into a lowercase file name with dashes between words.

    Examples:
        >>> dash_filename("Hello, World!")
        'hello-world'
    """
    dashed = re.sub(r"[^\w]+", "-", title.lower(), flags=re.UNICODE)
    return dashed.strip("-_")


def has_date_prefix(name: str) -> bool:
    """Check if a file name starts with a YYYY-MM-DD- prefix."""
    return bool(DATE_PREFIX_RE.match(name))


def format_date(value: date | datetime | str) -> str:
    """Format a date as an ISO date string (YYYY-MM-DD)."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def strip_source_suffixes(filename: str) -> str:
    """Return a file name without any of its extensions.

    Examples:
        >>> strip_source_suffixes("post/2024-01-02-hi.md.jinja")
        '2024-01-02-hi'
    """
    name = Path(filename).name
    return name.split(".", 1)[0] if not name.startswith(".") else name


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to a file by replacing it with a fully written temporary sibling.

    Readers either see the previous content or the new content, never a partial
    write.

    Raises:
        FilesystemError: If the temporary file cannot be written or renamed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        mode = path.stat().st_mode & 0o777 if path.exists() else NEW_FILE_MODE
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise FilesystemError("write", path, exc) from exc


def clean_empty_dir(path: Path) -> bool:
    """Remove a directory if it (recursively) contains no files.

    Args:
        path: Directory to inspect.

    Returns:
        True if the directory was removed.
    """
    if not path.is_dir():
        return False
    if any(p.is_file() or p.is_symlink() for p in path.rglob("*")):
        return False
    for item in sorted((p for p in path.rglob("*") if p.is_dir()), reverse=True):
        item.rmdir()
    path.rmdir()
    return True


def is_hidden(path: Path) -> bool:
    """Check if any component of a relative path starts with a dot."""
    return any(part.startswith(".") for part in path.parts)


def is_internal_path(path: Path) -> bool:
    """Check if a path is internal (contains directories starting with _).

    Args:
        path: Relative path to check.

    Returns:
        True if any parent component starts with underscore.
    """
    return any(part.startswith("_") for part in path.parts[:-1])

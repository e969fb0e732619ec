"""
Representative dates for project directories.

Two strategies order the copies of a project:
- "filesystem" (default): the newest last-write time of any file in the tree
- "content": a "copyright ... YYYY" notice in a license or index page,
  falling back to the filesystem strategy when none is found

Every date is normalized to midnight UTC.
"""

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Literal, Optional, Union

from .crawler import DEFAULT_IGNORE_PATTERNS, iter_files

logger = logging.getLogger(__name__)

DateStrategy = Literal["filesystem", "content"]

# Files scanned for a copyright year, in order
COPYRIGHT_CANDIDATES = (
    "LICENSE",
    "LICENSE.txt",
    "LICENSE.md",
    "index.html",
)

COPYRIGHT_PATTERN = re.compile(r"copyright\b[^\n]*?\b((?:19|20)\d{2})\b", re.IGNORECASE)

# Bytes read from each candidate file
COPYRIGHT_SCAN_LIMIT = 64 * 1024


def to_day(timestamp: float) -> datetime:
    """Convert a POSIX timestamp to its date at midnight UTC."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def copyright_date(directory: Union[str, Path]) -> Optional[datetime]:
    """
    Look for a copyright year in the candidate files of a directory.

    Returns:
        January 1 of the first year found, or None
    """
    for candidate in COPYRIGHT_CANDIDATES:
        path = os.path.join(str(directory), candidate)
        if not os.path.isfile(path):
            continue
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read(COPYRIGHT_SCAN_LIMIT)
        except OSError as e:
            logger.warning(f"Cannot read {path}: {e}")
            continue

        match = COPYRIGHT_PATTERN.search(text)
        if match:
            year = int(match.group(1))
            logger.debug(f"Copyright year {year} found in {path}")
            return datetime(year, 1, 1, tzinfo=timezone.utc)

    return None


def newest_file_date(
    directory: Union[str, Path],
    ignore_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
    exclude_paths: Iterable[Union[str, Path]] = ()
) -> datetime:
    """
    Date of the most recently written file under a directory.

    Files that cannot be stat'ed are skipped. A tree with no readable files
    falls back to the directory's own modification time.
    """
    newest: Optional[float] = None

    for entry in iter_files(directory, ignore_patterns, exclude_paths):
        try:
            mtime = entry.stat(follow_symlinks=False).st_mtime
        except OSError as e:
            logger.warning(f"Cannot stat {entry.path}: {e}")
            continue
        if newest is None or mtime > newest:
            newest = mtime

    if newest is None:
        logger.debug(f"No readable files under {directory}, using folder time")
        newest = os.stat(str(directory)).st_mtime

    return to_day(newest)


def resolve_date(
    directory: Union[str, Path],
    strategy: DateStrategy = "filesystem",
    ignore_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
    exclude_paths: Iterable[Union[str, Path]] = ()
) -> datetime:
    """
    Derive the representative date of a project directory.

    Args:
        directory: The project directory
        strategy: "filesystem" or "content"
        ignore_patterns: Directory-name patterns skipped by the file scan
        exclude_paths: Absolute directories skipped by the file scan

    Returns:
        A timezone-aware UTC datetime at midnight
    """
    if strategy == "content":
        found = copyright_date(directory)
        if found is not None:
            return found
        logger.debug(f"No copyright year in {directory}, using file times")
    elif strategy != "filesystem":
        raise ValueError(f"Unknown date strategy: {strategy}")

    return newest_file_date(directory, ignore_patterns, exclude_paths)

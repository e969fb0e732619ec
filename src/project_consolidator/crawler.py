"""
Project crawler for discovering project folders under a source root.

This module is responsible for:
- Walking a directory tree with os.scandir using an explicit stack
- Pruning ignored subtrees (VCS metadata, editor config, dependency caches)
- Recognizing project directories by a priority-ordered marker list
- Treating each project as opaque (no descent below a project)
- Listing the files of a project while honoring the same ignore rules
"""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from .types import MarkerMatch

logger = logging.getLogger(__name__)

# Directory names never treated as (or searched for) projects
DEFAULT_IGNORE_PATTERNS: Tuple[str, ...] = (
    # Version control metadata
    ".git",
    ".svn",
    ".hg",
    ".bzr",
    # Editor / IDE configuration
    ".vs",
    ".vscode",
    ".idea",
    # Dependency caches
    "node_modules",
    "bower_components",
    ".venv",
    "venv",
    "packages",
    # Build tool caches
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".tox",
    ".gradle",
    ".next",
    # Versions nested under an already-consolidated project
    ".versions",
)

# Marker files in priority order; the first pattern that matches wins
MARKER_PATTERNS: Tuple[str, ...] = (
    "package.json",       # package manifest
    "requirements.txt",   # dependency list
    "Pipfile",
    "*.sln",              # solution / project files
    "*.csproj",
    "*.vbproj",
    "*.vcxproj",
    "*.pyproj",
    "README.md",          # documentation catch-all
    "README.txt",
    "README",
)

PACKAGE_MANIFEST = "package.json"


def _normalized(paths: Iterable[Union[str, Path]]) -> Set[str]:
    return {os.path.normcase(os.path.abspath(str(p))) for p in paths}


def is_ignored(name: str, patterns: Iterable[str]) -> Optional[str]:
    """
    Check if a directory name matches any ignore pattern.

    Patterns are fnmatch globs compared case-insensitively against the
    directory's own name (".git", "*.egg-info", ...).

    Args:
        name: The directory name to check
        patterns: Ignore patterns

    Returns:
        The matching pattern if found, None otherwise
    """
    name_lower = name.lower()
    for pattern in patterns:
        if fnmatch.fnmatch(name_lower, pattern.lower()):
            return pattern
    return None


def find_marker(
    directory: Union[str, Path],
    file_names: Optional[Sequence[str]] = None,
    markers: Sequence[str] = MARKER_PATTERNS
) -> Optional[MarkerMatch]:
    """
    Find the highest-priority marker file directly inside a directory.

    Args:
        directory: Directory to test
        file_names: Names of regular files directly inside the directory
                    (listed from disk if not given)
        markers: Priority-ordered marker patterns

    Returns:
        MarkerMatch for the first pattern with a matching file, or None
    """
    directory = str(directory)

    if file_names is None:
        with os.scandir(directory) as entries:
            file_names = [e.name for e in entries if e.is_file(follow_symlinks=False)]

    # Sort so a glob matching several files always picks the same one
    lowered = sorted((name.lower(), name) for name in file_names)

    for pattern in markers:
        pattern_lower = pattern.lower()
        for name_lower, name in lowered:
            if fnmatch.fnmatch(name_lower, pattern_lower):
                return MarkerMatch(pattern=pattern, path=os.path.join(directory, name))

    return None


def crawl_projects(
    source_root: Union[str, Path],
    ignore_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
    exclude_paths: Iterable[Union[str, Path]] = (),
    markers: Sequence[str] = MARKER_PATTERNS
) -> Iterator[Tuple[str, MarkerMatch]]:
    """
    Lazily yield project directories found under source_root.

    The walk uses an explicit stack, so its depth is bounded by memory and
    not by the interpreter's recursion limit. Subdirectories are visited in
    name order, which makes discovery order stable between runs. A directory
    that holds a marker file is yielded and never descended into.

    Unreadable directories are logged and skipped.

    Args:
        source_root: The root directory to crawl
        ignore_patterns: Directory-name patterns whose subtrees are pruned
        exclude_paths: Absolute directories to prune (e.g. an output root
                       that lives under the source root)
        markers: Priority-ordered marker patterns

    Yields:
        (absolute project path, MarkerMatch) tuples

    Raises:
        FileNotFoundError: If source_root doesn't exist
        NotADirectoryError: If source_root is not a directory
    """
    root_path = Path(source_root)

    if not root_path.exists():
        raise FileNotFoundError(f"Source root not found: {root_path}")

    if not root_path.is_dir():
        raise NotADirectoryError(f"Source root is not a directory: {root_path}")

    root_str = os.path.abspath(str(root_path))
    patterns = list(ignore_patterns)
    excluded = _normalized(exclude_paths)

    logger.info(f"Crawling for projects under: {root_str}")

    stack: List[str] = [root_str]
    dirs_scanned = 0
    projects_found = 0
    errors_count = 0

    while stack:
        dir_path = stack.pop()
        dirs_scanned += 1

        try:
            with os.scandir(dir_path) as entries:
                file_names: List[str] = []
                subdirs: List[str] = []
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            subdirs.append(entry.name)
                        elif entry.is_file(follow_symlinks=False):
                            file_names.append(entry.name)
                    except OSError as e:
                        logger.warning(f"Cannot access {entry.path}: {e}")
        except OSError as e:
            errors_count += 1
            logger.warning(f"Cannot scan directory {dir_path}: {e}")
            continue

        marker = find_marker(dir_path, file_names, markers)
        if marker is not None:
            projects_found += 1
            logger.debug(f"Project found: {dir_path} (marker: {marker.name})")
            yield dir_path, marker
            continue

        # Push in reverse so the stack pops subdirectories in name order
        for name in sorted(subdirs, reverse=True):
            matched = is_ignored(name, patterns)
            if matched:
                logger.debug(f"Ignored by pattern '{matched}': {os.path.join(dir_path, name)}")
                continue
            child = os.path.join(dir_path, name)
            if os.path.normcase(child) in excluded:
                logger.debug(f"Excluded path: {child}")
                continue
            stack.append(child)

        if dirs_scanned % 10000 == 0:
            logger.info(f"Scanned {dirs_scanned} folders...")

    logger.info(
        f"Crawl complete: {projects_found} projects in {dirs_scanned} folders "
        f"({errors_count} access errors skipped)"
    )


def iter_files(
    directory: Union[str, Path],
    ignore_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
    exclude_paths: Iterable[Union[str, Path]] = ()
) -> Iterator[os.DirEntry]:
    """
    Yield every regular file under a directory, skipping ignored subtrees.

    Args:
        directory: Directory to list
        ignore_patterns: Directory-name patterns whose subtrees are pruned
        exclude_paths: Absolute directories to prune

    Yields:
        os.DirEntry objects for regular files
    """
    patterns = list(ignore_patterns)
    excluded = _normalized(exclude_paths)
    stack: List[str] = [os.path.abspath(str(directory))]

    while stack:
        dir_path = stack.pop()
        try:
            with os.scandir(dir_path) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            if is_ignored(entry.name, patterns):
                                continue
                            if os.path.normcase(entry.path) in excluded:
                                continue
                            stack.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            yield entry
                    except OSError as e:
                        logger.warning(f"Cannot access {entry.path}: {e}")
        except OSError as e:
            logger.warning(f"Cannot scan directory {dir_path}: {e}")

"""
Identity resolution for discovered project directories.

Copies of the same logical project share an identity key:
- A package manifest (package.json) with a "name" field is keyed by that name,
  so renamed copies still group together
- Any other marker is keyed by the SHA-256 of its bytes, so byte-identical
  marker files group together
- An unreadable marker gets a synthetic, non-deduplicating key
"""

import hashlib
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .crawler import PACKAGE_MANIFEST
from .types import MarkerMatch

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "sha256"


def hash_bytes(data: bytes, algorithm: str = HASH_ALGORITHM) -> str:
    """Compute a fixed-length hex digest of raw bytes."""
    h = hashlib.new(algorithm)
    h.update(data)
    return h.hexdigest()


def _read_marker(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def manifest_name(data: bytes) -> Optional[str]:
    """
    Extract the declared project name from package manifest bytes.

    Returns:
        The stripped "name" value, or None if the document has no usable name
    """
    try:
        document = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError):
        return None

    if not isinstance(document, dict):
        return None

    name = document.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


def synthetic_identity(directory: Union[str, Path], now: Optional[datetime] = None) -> str:
    """Build a fallback key from the folder's leaf name and the current time."""
    now = now or datetime.now()
    leaf = os.path.basename(os.path.normpath(str(directory)))
    return f"{leaf}@{now.strftime('%Y%m%d%H%M%S%f')}"


def resolve_identity(directory: Union[str, Path], marker: MarkerMatch) -> str:
    """
    Derive the identity key for a project directory.

    Args:
        directory: The project directory
        marker: The marker file that qualified the directory

    Returns:
        The identity key. A marker that cannot be read yields a synthetic key
        that will never match another project; this is logged as an error.
    """
    try:
        data = _read_marker(marker.path)
    except OSError as e:
        key = synthetic_identity(directory)
        logger.error(
            f"Cannot read marker {marker.path}: {e}. "
            f"Using synthetic identity '{key}'"
        )
        return key

    if marker.pattern == PACKAGE_MANIFEST:
        name = manifest_name(data)
        if name is not None:
            logger.debug(f"Identity from package name: {name} ({directory})")
            return name
        logger.debug(f"No package name in {marker.path}, hashing marker content")

    key = hash_bytes(data)
    logger.debug(f"Identity from {marker.name} hash: {key[:12]}... ({directory})")
    return key

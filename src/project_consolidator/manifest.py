"""
JSON manifest of the final project index.

The manifest maps each identity key to its ordered copies:

    {
      "<identityKey>": [
        {"path": "...", "date": "2024-03-05T00:00:00Z", "primary": true,
         "destinationPath": "..."},
        ...
      ]
    }

In map-only runs "destinationPath" is left out of every record.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from .index import ProjectIndex

logger = logging.getLogger(__name__)

Manifest = Dict[str, List[Dict[str, Any]]]

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_date(value: datetime) -> str:
    """Render a date as ISO-8601 UTC at midnight."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    value = value.replace(hour=0, minute=0, second=0, microsecond=0)
    return value.strftime(DATE_FORMAT)


def build_manifest(index: ProjectIndex, include_destinations: bool = True) -> Manifest:
    """
    Take a snapshot of the index as plain data.

    Args:
        index: The final project index
        include_destinations: False for map-only runs

    Returns:
        A new dict that shares no objects with the index
    """
    manifest: Manifest = {}
    for group in index:
        records = []
        for member in group.members:
            record: Dict[str, Any] = {
                "path": member.source_path,
                "date": format_date(member.representative_date),
                "primary": member.is_primary,
            }
            if include_destinations:
                record["destinationPath"] = member.destination_path
            records.append(record)
        manifest[group.identity_key] = records
    return manifest


class ManifestWriter:
    """Writes manifests to disk."""

    def __init__(self, manifest_path: Union[str, Path], overwrite: bool = False):
        self.manifest_path = Path(manifest_path)
        self.overwrite = overwrite

    def write(self, index: ProjectIndex, include_destinations: bool = True) -> Manifest:
        """
        Serialize the index to the manifest file.

        Raises:
            FileExistsError: If the file exists and overwrite is not allowed
        """
        if self.manifest_path.exists() and not self.overwrite:
            raise FileExistsError(f"Manifest already exists: {self.manifest_path}")

        manifest = build_manifest(index, include_destinations)
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2, ensure_ascii=False)
            f.write("\n")

        logger.info(
            f"Manifest written: {len(manifest)} groups, "
            f"{sum(len(r) for r in manifest.values())} records to {self.manifest_path}"
        )
        return manifest


def load_manifest(manifest_path: Union[str, Path]) -> Manifest:
    """
    Read a manifest back from disk.

    Raises:
        FileNotFoundError: If the manifest doesn't exist
        ValueError: If the document is not a manifest
    """
    path = Path(manifest_path)
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        document = json.load(f)

    if not isinstance(document, dict) or not all(
        isinstance(records, list) for records in document.values()
    ):
        raise ValueError(f"Not a project manifest: {path}")

    return document

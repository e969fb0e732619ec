"""
Destination planning for resolved identity groups.

This module is responsible for:
- Placing each primary at Out/<year>/<name> (dated) or Out/<name> (flat)
- Nesting other copies at <primary>/.versions/v<N>_<name>, N = 1, 2, ...
- Resolving name collisions between groups with _1, _2, etc. suffixes
- Asking the operator to confirm the layout mode when requested
"""

import logging
import os
from pathlib import Path
from typing import Optional, Set, Union

from .decisions import DecisionProvider
from .index import IdentityGroup, ProjectIndex, PrimarySelectionError
from .types import LayoutMode

logger = logging.getLogger(__name__)

# Folder under a primary's destination that holds older copies
VERSIONS_FOLDER = ".versions"

# Safety limit on collision suffixes
MAX_SUFFIX = 10000


def choose_layout(
    decisions: DecisionProvider,
    default: LayoutMode = LayoutMode.DATED
) -> LayoutMode:
    """Ask the operator whether to organize primaries by year."""
    dated = decisions.ask_yes_no(
        "Organize projects into year folders?",
        default=default == LayoutMode.DATED
    )
    return LayoutMode.DATED if dated else LayoutMode.FLAT


def resolve_destination(
    parent: Union[str, Path],
    folder_name: str,
    claimed: Optional[Set[str]] = None
) -> str:
    """
    Resolve a unique destination path under a parent directory.

    If parent/folder_name already exists on disk or was claimed earlier in
    the run, appends _1, _2, etc. until a free name is found.

    Args:
        parent: The directory that will contain the destination
        folder_name: The preferred folder name
        claimed: Normalized full paths already planned in this run

    Returns:
        The full destination path (may have a suffix)
    """
    claimed = claimed if claimed is not None else set()
    parent_str = str(parent)

    def _taken(path: str) -> bool:
        return os.path.normcase(path) in claimed or os.path.exists(path)

    candidate = os.path.join(parent_str, folder_name)
    if not _taken(candidate):
        return candidate

    for counter in range(1, MAX_SUFFIX + 1):
        candidate = os.path.join(parent_str, f"{folder_name}_{counter}")
        if not _taken(candidate):
            return candidate

    raise RuntimeError(
        f"Could not find unique name for '{folder_name}' "
        f"after {MAX_SUFFIX} attempts"
    )


def version_folder_name(number: int, folder_name: str) -> str:
    return f"v{number}_{folder_name}"


class DestinationPlanner:
    """
    Computes destination paths for every instance of every group.

    Keeps the set of destinations claimed during the run so two groups
    whose primaries share a folder name never target the same path.
    """

    def __init__(
        self,
        output_root: Union[str, Path],
        layout: LayoutMode = LayoutMode.DATED
    ):
        self.output_root = os.path.abspath(str(output_root))
        self.layout = layout
        self._claimed: Set[str] = set()
        self.renamed_count = 0

    def primary_parent(self, group: IdentityGroup) -> str:
        primary = group.primary
        if self.layout == LayoutMode.DATED:
            return os.path.join(self.output_root, str(primary.representative_date.year))
        return self.output_root

    def plan_group(self, group: IdentityGroup) -> str:
        """
        Set destination_path on every member of a group.

        Returns:
            The primary's destination path

        Raises:
            PrimarySelectionError: If the group has no primary
        """
        primary = group.primary
        if primary is None:
            raise PrimarySelectionError(
                f"Cannot plan group '{group.identity_key}' without a primary"
            )

        primary_dest = resolve_destination(
            self.primary_parent(group), primary.name, self._claimed
        )
        self._claimed.add(os.path.normcase(primary_dest))
        primary.destination_path = primary_dest

        if os.path.basename(primary_dest) != primary.name:
            self.renamed_count += 1
            logger.warning(
                f"Destination name collision for '{group.identity_key}': "
                f"{primary.name} planned as {os.path.basename(primary_dest)}"
            )

        versions_root = os.path.join(primary_dest, VERSIONS_FOLDER)
        for number, member in enumerate(group.secondaries, start=1):
            member.destination_path = os.path.join(
                versions_root, version_folder_name(number, member.name)
            )

        logger.debug(f"Planned '{group.identity_key}': {primary_dest} (+{len(group) - 1} versions)")
        return primary_dest

    def plan_all(self, index: ProjectIndex) -> None:
        """Plan destinations for every group in the index."""
        logger.info(
            f"Planning destinations under {self.output_root} "
            f"({self.layout.value} layout)"
        )
        for group in index:
            self.plan_group(group)
        if self.renamed_count:
            logger.warning(f"{self.renamed_count} destination(s) renamed to avoid collisions")

"""
Primary selection for identity groups.

After crawling, each group is ordered newest-first and its first member
becomes the primary. In interactive mode the operator may pick another
member for any group holding more than one copy.
"""

import logging
from typing import Optional

from .decisions import AutoDecisionProvider, DecisionProvider
from .index import IdentityGroup, ProjectIndex

logger = logging.getLogger(__name__)


def describe_instance(group: IdentityGroup, position: int) -> str:
    """One-line label for a group member, as shown to the operator."""
    member = group.members[position]
    return f"{member.source_path}  ({member.representative_date:%Y-%m-%d})"


def select_primary(
    group: IdentityGroup,
    decisions: Optional[DecisionProvider] = None,
    interactive: bool = False
) -> int:
    """
    Sort a group and mark its primary.

    Args:
        group: The group to resolve
        decisions: Provider consulted when interactive
        interactive: Whether to ask the operator for groups with several copies

    Returns:
        0-based position of the primary in the sorted group
    """
    group.sort()

    position = 0
    if interactive and len(group) > 1:
        decisions = decisions or AutoDecisionProvider()
        options = [describe_instance(group, i) for i in range(len(group))]
        position = decisions.ask_choice(
            options,
            f"\n{len(group)} copies of '{group.identity_key}' found (newest first):"
        )
        if position != 0:
            logger.info(
                f"Operator chose {group.members[position].source_path} "
                f"as primary for '{group.identity_key}'"
            )

    primary = group.mark_primary(position)
    logger.debug(f"Primary for '{group.identity_key}': {primary.source_path}")
    return position


def select_primaries(
    index: ProjectIndex,
    decisions: Optional[DecisionProvider] = None,
    interactive: bool = False
) -> None:
    """
    Mark exactly one primary in every group of the index.

    Raises:
        PrimarySelectionError: If any group ends up without exactly one primary
    """
    logger.info(
        f"Selecting primaries for {len(index)} groups "
        f"({len(index.duplicate_groups())} with duplicates)"
    )

    for group in index:
        select_primary(group, decisions, interactive)

    index.verify_primaries()

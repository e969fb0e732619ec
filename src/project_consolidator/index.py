"""
In-memory index of discovered projects, grouped by identity key.

This module is responsible for:
- Accumulating ProjectInstance objects into IdentityGroup collections
- Ordering each group by representative date (newest first)
- Marking exactly one primary per group
- Checking the one-primary-per-group invariant before planning
"""

import logging
from typing import Dict, Iterator, List, Optional

from .types import ProjectInstance

logger = logging.getLogger(__name__)


class PrimarySelectionError(Exception):
    """Raised when a group does not have exactly one primary instance."""
    pass


class IdentityGroup:
    """
    All discovered copies of one logical project.

    Members are kept newest-first once sort() has run. Copies that share a
    date are ordered by source path so the ordering is stable between runs.
    """

    def __init__(self, identity_key: str):
        self.identity_key = identity_key
        self.members: List[ProjectInstance] = []

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[ProjectInstance]:
        return iter(self.members)

    def add(self, instance: ProjectInstance) -> None:
        if instance.identity_key != self.identity_key:
            raise ValueError(
                f"Instance key '{instance.identity_key}' does not belong "
                f"to group '{self.identity_key}'"
            )
        self.members.append(instance)

    def sort(self) -> None:
        """Order members by representative date, newest first."""
        by_path = sorted(self.members, key=lambda m: m.source_path)
        self.members = sorted(by_path, key=lambda m: m.representative_date, reverse=True)

    def mark_primary(self, position: int) -> ProjectInstance:
        """
        Make the member at a position the group's only primary.

        Args:
            position: 0-based index into the current member order

        Returns:
            The new primary instance
        """
        if not 0 <= position < len(self.members):
            raise IndexError(
                f"Primary position {position} out of range for group "
                f"'{self.identity_key}' ({len(self.members)} members)"
            )
        for i, member in enumerate(self.members):
            member.is_primary = i == position
        return self.members[position]

    @property
    def primary(self) -> Optional[ProjectInstance]:
        for member in self.members:
            if member.is_primary:
                return member
        return None

    @property
    def secondaries(self) -> List[ProjectInstance]:
        """Non-primary members in group order."""
        return [m for m in self.members if not m.is_primary]


class ProjectIndex:
    """
    Mapping from identity key to IdentityGroup for a single run.

    Groups are kept in first-seen order.
    """

    def __init__(self):
        self._groups: Dict[str, IdentityGroup] = {}

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[IdentityGroup]:
        return iter(self._groups.values())

    def __contains__(self, identity_key: str) -> bool:
        return identity_key in self._groups

    def __getitem__(self, identity_key: str) -> IdentityGroup:
        return self._groups[identity_key]

    def add(self, instance: ProjectInstance) -> IdentityGroup:
        """Append an instance to the group for its identity key."""
        group = self._groups.get(instance.identity_key)
        if group is None:
            group = IdentityGroup(instance.identity_key)
            self._groups[instance.identity_key] = group
        group.add(instance)
        return group

    @property
    def groups(self) -> List[IdentityGroup]:
        return list(self._groups.values())

    def instances(self) -> Iterator[ProjectInstance]:
        for group in self._groups.values():
            yield from group.members

    def instance_count(self) -> int:
        return sum(len(g) for g in self._groups.values())

    def duplicate_groups(self) -> List[IdentityGroup]:
        """Groups holding more than one copy."""
        return [g for g in self._groups.values() if len(g) > 1]

    def sort_groups(self) -> None:
        for group in self._groups.values():
            group.sort()

    def verify_primaries(self) -> None:
        """
        Check that every group has exactly one primary.

        Raises:
            PrimarySelectionError: On the first group that violates this
        """
        for group in self._groups.values():
            count = sum(1 for m in group.members if m.is_primary)
            if count != 1:
                raise PrimarySelectionError(
                    f"Group '{group.identity_key}' has {count} primaries (expected 1)"
                )
        logger.debug(f"Primary check passed for {len(self._groups)} groups")

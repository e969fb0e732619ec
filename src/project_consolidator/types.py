"""
Type definitions and data classes for the project consolidator.

This module defines:
- MarkerMatch: The marker file that qualified a directory as a project
- ProjectInstance: One discovered copy of a project
- LayoutMode: Enum for dated vs flat destination layouts
- TransferStatus: Enum for transfer operation outcomes
- TransferResult: Data class representing the result of a transfer
- ReportEntry: Data class for CSV report rows
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


@dataclass(slots=True, frozen=True)
class MarkerMatch:
    """
    The marker file found directly inside a project directory.

    Attributes:
        pattern: The marker pattern that matched (e.g. "package.json", "*.sln")
        path: Full path to the matched file
    """
    pattern: str
    path: str

    @property
    def name(self) -> str:
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]


@dataclass(slots=True)
class ProjectInstance:
    """
    One discovered copy of a project.

    Attributes:
        source_path: Absolute path of the project directory as discovered
        identity_key: Deduplication key shared by all copies of the project
        representative_date: Date (midnight, UTC) used to order versions
        is_primary: Whether this copy is the canonical one for its group
        destination_path: Planned destination, set by the planner
        marker: The marker file that qualified the directory
    """
    source_path: str
    identity_key: str
    representative_date: datetime
    is_primary: bool = False
    destination_path: Optional[str] = None
    marker: Optional[MarkerMatch] = None

    @property
    def name(self) -> str:
        """The directory's leaf name."""
        return self.source_path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]

    def __hash__(self):
        return hash(self.source_path)

    def __eq__(self, other):
        if not isinstance(other, ProjectInstance):
            return False
        return self.source_path == other.source_path


class LayoutMode(Enum):
    """Destination layout for primary copies."""
    DATED = "dated"  # Out/<year>/<name>
    FLAT = "flat"    # Out/<name>


class TransferStatus(Enum):
    """Status of a project transfer operation."""
    SUCCESS = "success"                  # Every item moved/copied
    PARTIAL = "partial"                  # Some items failed, others transferred
    ERROR = "error"                      # Nothing could be transferred
    SKIPPED_MISSING = "skipped_missing"  # Source no longer exists
    SKIPPED_EXISTS = "skipped_exists"    # Destination already exists
    SKIPPED_NO_DEST = "skipped_no_dest"  # No destination was planned


@dataclass
class TransferResult:
    """Result of a transfer operation."""
    identity_key: str
    source_path: str
    dest_path: Optional[str]
    status: TransferStatus
    message: str
    items_transferred: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == TransferStatus.SUCCESS


@dataclass
class ReportEntry:
    """Entry for the CSV report."""
    timestamp: str
    identity_key: str
    status: str
    source_path: str
    dest_path: str
    message: str
